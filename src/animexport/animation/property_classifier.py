"""
Property Classifier

Maps source property identifiers (``m_LocalPosition.x``,
``blendShape.Smile``...) to glTF animation targets and vector slots.
"""

import logging
from typing import Callable, Dict, Optional

from ..config.settings import AXIS_SUFFIX_OFFSETS, BLEND_SHAPE_PREFIX, PROPERTY_PREFIXES
from ..core.errors import InvariantViolation
from .animation import PropertyTarget

logger = logging.getLogger(__name__)

# (morph name) -> morph index for the binding's node, None if unknown
MorphLookup = Callable[[str], Optional[int]]


class PropertyClassifier:
    """
    Prefix/suffix matching table for property identifiers.

    Matching is order-independent: an identifier must match exactly one
    prefix entry, otherwise it is unsupported.
    """

    def __init__(
        self,
        prefixes: Optional[Dict[str, str]] = None,
        suffix_offsets: Optional[Dict[str, int]] = None,
        blend_shape_prefix: str = BLEND_SHAPE_PREFIX,
    ):
        """
        Initialize classifier.

        Args:
            prefixes: Identifier prefix -> PropertyTarget value
            suffix_offsets: Axis suffix -> element slot
            blend_shape_prefix: Prefix that precedes the morph target name
        """
        table = PROPERTY_PREFIXES if prefixes is None else prefixes
        self.prefixes: Dict[str, PropertyTarget] = {
            prefix: PropertyTarget(name) for prefix, name in table.items()
        }
        self.suffix_offsets = dict(AXIS_SUFFIX_OFFSETS if suffix_offsets is None else suffix_offsets)
        self.blend_shape_prefix = blend_shape_prefix

    def classify(self, property_name: str) -> PropertyTarget:
        """Return the target for an identifier (UNSUPPORTED if nothing matches)."""
        matches = {
            target for prefix, target in self.prefixes.items()
            if property_name.startswith(prefix)
        }
        if len(matches) == 1:
            return matches.pop()
        if len(matches) > 1:
            logger.warning("Ambiguous property identifier %r matches %s", property_name,
                           sorted(t.value for t in matches))
        return PropertyTarget.UNSUPPORTED

    def blend_shape_name(self, property_name: str) -> str:
        """Morph target name embedded in a blend shape identifier."""
        return property_name[len(self.blend_shape_prefix):]

    def element_offset(
        self,
        property_name: str,
        target: PropertyTarget,
        morph_lookup: Optional[MorphLookup] = None,
    ) -> Optional[int]:
        """
        Resolve the vector slot an identifier writes to.

        Args:
            property_name: Raw property identifier
            target: Target previously returned by classify()
            morph_lookup: Morph name -> index for the node (blend shapes only)

        Returns:
            Slot index, or None when a blend shape names an unknown morph target

        Raises:
            InvariantViolation: if a classified identifier carries no axis suffix
        """
        if target == PropertyTarget.BLEND_SHAPE:
            if morph_lookup is None:
                raise InvariantViolation(f"Blend shape {property_name!r} classified without a morph lookup")
            return morph_lookup(self.blend_shape_name(property_name))

        for suffix, offset in self.suffix_offsets.items():
            if property_name.endswith(suffix):
                return offset

        raise InvariantViolation(
            f"Identifier {property_name!r} classified as {target.value} has no axis suffix"
        )


_default_classifier = PropertyClassifier()


def classify(property_name: str) -> PropertyTarget:
    """Classify with the configured default table."""
    return _default_classifier.classify(property_name)


def element_offset(property_name: str, target: PropertyTarget,
                   morph_lookup: Optional[MorphLookup] = None) -> Optional[int]:
    """Resolve an element offset with the configured default table."""
    return _default_classifier.element_offset(property_name, target, morph_lookup)
