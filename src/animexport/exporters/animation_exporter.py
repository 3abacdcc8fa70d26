"""
Animation Exporter

Drives a clip's curve bindings through classification, aggregation and
encoding, and writes the result into a glTF document.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from ..animation.animation import AnimationClip, AnimationRecord, CurveBinding, PropertyTarget
from ..animation.curve_aggregator import CurveAggregator
from ..animation.property_classifier import PropertyClassifier
from ..config.settings import DEFAULT_ANIMATION_NAME
from ..core.errors import UnsupportedArity
from .buffer_encoder import BufferEncoder, EncodedArrayPair
from .gltf_buffer_writer import GltfBufferWriter

logger = logging.getLogger(__name__)


class SceneLookup(Protocol):
    """Scene graph queries the exporter needs (see SceneGraph)."""

    def resolve_node(self, path: str) -> Optional[int]:
        ...

    def morph_target_count(self, node_index: int) -> int:
        ...

    def morph_target_index(self, node_index: int, name: str) -> Optional[int]:
        ...

    def rest_values(self, node_index: int, target: PropertyTarget) -> Optional[Tuple[float, ...]]:
        ...


@dataclass
class SkippedBinding:
    """A binding left out of the export, and why."""

    path: str
    property_name: str
    reason: str


@dataclass
class ExportedAnimation:
    """
    Result of exporting one clip, before anything is written.

    ``arrays`` maps each sampler index of ``record`` to its encoded
    Input/Output arrays.
    """

    record: AnimationRecord
    arrays: Dict[int, EncodedArrayPair] = field(default_factory=dict)
    skipped: List[SkippedBinding] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.record.channels


class AnimationExporter:
    """
    Exports source clips as glTF animations.

    Each export_clip() call is self-contained: buckets, sampler indices
    and the record all live and die with that call.
    """

    def __init__(self, classifier: Optional[PropertyClassifier] = None,
                 encoder: Optional[BufferEncoder] = None):
        self.classifier = classifier if classifier is not None else PropertyClassifier()
        self.encoder = encoder if encoder is not None else BufferEncoder()

    def export_clip(self, clip: AnimationClip, scene: SceneLookup) -> ExportedAnimation:
        """
        Aggregate and encode every binding of a clip.

        Unusable bindings are logged and skipped; they never abort the
        export.

        Args:
            clip: Source clip
            scene: Node/morph target lookups for the clip's paths

        Returns:
            ExportedAnimation with sampler accessors still unassigned
        """
        aggregator = CurveAggregator()
        skipped: List[SkippedBinding] = []

        def skip(binding: CurveBinding, reason: str):
            logger.warning("Skipping %s:%s (%s)", binding.path or "<root>", binding.property_name, reason)
            skipped.append(SkippedBinding(binding.path, binding.property_name, reason))

        for binding in clip.bindings:
            target = self.classifier.classify(binding.property_name)
            if target == PropertyTarget.UNSUPPORTED:
                skip(binding, "unsupported property")
                continue
            if target == PropertyTarget.EULER_ROTATION:
                skip(binding, "Euler rotation curve, set the clip's rotation interpolation to quaternion")
                continue

            node = scene.resolve_node(binding.path)
            if node is None:
                skip(binding, "path does not resolve to a node")
                continue

            if target == PropertyTarget.BLEND_SHAPE:
                element_count = scene.morph_target_count(node)
                if element_count == 0:
                    skip(binding, "node has no morph targets")
                    continue
                offset = self.classifier.element_offset(
                    binding.property_name, target,
                    lambda name: scene.morph_target_index(node, name),
                )
                if offset is None:
                    skip(binding, "unknown morph target")
                    continue
            else:
                element_count = target.element_count
                offset = self.classifier.element_offset(binding.property_name, target)

            if not 0 <= offset < element_count:
                skip(binding, f"element {offset} outside {target.value} ({element_count} elements)")
                continue

            aggregator.add_axis_samples(node, target, offset, element_count, binding.samples)

        encoded = {}
        interpolations = {}
        for bucket in aggregator.buckets.values():
            if not len(bucket):
                logger.debug("Dropping empty %r", bucket)
                continue

            table = aggregator.finalize(bucket, scene.rest_values(bucket.node, bucket.target))
            try:
                pair = self.encoder.encode(table)
            except UnsupportedArity as exc:
                logger.error("Omitting sampler for node %d %s: %s", bucket.node, bucket.target.value, exc)
                continue

            encoded[bucket.key] = pair
            interpolations[bucket.key] = table.interpolation

        record, indices = aggregator.builder.build(clip.name, interpolations, encoded.keys())
        arrays = {indices[key]: pair for key, pair in encoded.items()}

        logger.info("Exported clip '%s': %d channels, %d bindings skipped",
                    clip.name, len(record.channels), len(skipped))
        return ExportedAnimation(record=record, arrays=arrays, skipped=skipped)

    def write_animation(
        self,
        writer: GltfBufferWriter,
        exported: ExportedAnimation,
        buffer_index: Optional[int] = None,
        name: Optional[str] = None,
    ) -> Optional[int]:
        """
        Append an exported clip's accessors and animation to a document.

        Args:
            writer: Destination document writer
            exported: Result of export_clip()
            buffer_index: Buffer to extend (first buffer if None)
            name: Animation name (clip name if None)

        Returns:
            Index of the new animation, or None if the clip had no channels
        """
        record = exported.record
        record.name = name or record.name or DEFAULT_ANIMATION_NAME
        if exported.is_empty:
            logger.warning("Animation '%s' has no channels, not written", record.name)
            return None

        if buffer_index is None:
            buffer_index = writer.ensure_buffer()

        for sampler_index in sorted(exported.arrays):
            sampler = record.samplers[sampler_index]
            sampler.input, sampler.output = self.encoder.write(
                exported.arrays[sampler_index], writer, buffer_index
            )

        return writer.add_animation(record.to_gltf())

    def export_clips(
        self,
        clips: Iterable[AnimationClip],
        scene: SceneLookup,
        writer: GltfBufferWriter,
        buffer_index: Optional[int] = None,
    ) -> List[ExportedAnimation]:
        """Export several clips, writing each one before the next starts."""
        results = []
        for clip in clips:
            exported = self.export_clip(clip, scene)
            self.write_animation(writer, exported, buffer_index)
            results.append(exported)
        return results
