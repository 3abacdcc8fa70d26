"""Clip loader for JSON-described keyframe curves."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from ..animation.animation import AnimationClip, AxisSample, CurveBinding, TangentMode
from ..config.settings import PROJECT_ROOT


def _key(value: Any, default_tangent: TangentMode) -> AxisSample:
    """Coerce a JSON key (``[t, v]``, ``[t, v, tangent]`` or an object) into a sample."""

    if isinstance(value, dict):
        if "time" not in value or "value" not in value:
            raise ValueError(f"Key is missing 'time' or 'value': {value}")
        return AxisSample(value["time"], value["value"], value.get("tangent", default_tangent.value))

    if isinstance(value, (list, tuple)) and len(value) in (2, 3):
        tangent = value[2] if len(value) == 3 else default_tangent.value
        return AxisSample(value[0], value[1], tangent)

    raise ValueError(f"Expected [time, value] or [time, value, tangent], got {value}")


@dataclass
class BindingDefinition:
    """Data descriptor for one per-axis curve."""

    path: str
    property_name: str
    keys: List[AxisSample] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BindingDefinition":
        """Create a binding definition from JSON data."""

        if "property" not in data:
            raise ValueError(f"Binding is missing 'property': {data}")

        default_tangent = TangentMode(data.get("tangent", TangentMode.FREE.value))
        return cls(
            path=str(data.get("path", "")),
            property_name=str(data["property"]),
            keys=[_key(k, default_tangent) for k in data.get("keys", [])],
        )

    def instantiate(self) -> CurveBinding:
        return CurveBinding(self.path, self.property_name, self.keys)


@dataclass
class ClipDefinition:
    """Data descriptor for an animation clip."""

    name: str
    bindings: List[BindingDefinition] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClipDefinition":
        """Create a clip definition from JSON data."""

        known = {"name", "bindings"}
        return cls(
            name=str(data.get("name", "")),
            bindings=[BindingDefinition.from_dict(b) for b in data.get("bindings", [])],
            metadata={k: v for k, v in data.items() if k not in known},
        )

    def instantiate(self) -> AnimationClip:
        """Create a runtime clip from this definition."""

        return AnimationClip(self.name, [b.instantiate() for b in self.bindings])


class ClipLoader:
    """Load animation clips from JSON descriptors."""

    def load_clips(self, path: Path | str) -> List[AnimationClip]:
        """
        Load every clip from a descriptor file.

        The file holds either ``{"clips": [...]}`` or a single clip object.
        Unnamed clips are named after the file.
        """

        clip_path = Path(path)
        if not clip_path.is_absolute():
            clip_path = PROJECT_ROOT / clip_path
        clip_path = clip_path.resolve()

        if not clip_path.exists():
            raise FileNotFoundError(f"Clip file not found: {clip_path}")

        with clip_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)

        return [d.instantiate() for d in self.parse(payload, default_name=clip_path.stem)]

    def parse(self, payload: Any, default_name: str = "Clip") -> List[ClipDefinition]:
        """Parse an already-decoded JSON payload into clip definitions."""

        if isinstance(payload, dict) and "clips" in payload:
            entries = payload["clips"]
        elif isinstance(payload, dict):
            entries = [payload]
        else:
            raise ValueError("Clip descriptor must be a JSON object")

        if not isinstance(entries, list):
            raise ValueError("'clips' must be a list")

        definitions = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise ValueError(f"Clip {index} must be a JSON object")
            definition = ClipDefinition.from_dict(entry)
            if not definition.name:
                definition.name = default_name if len(entries) == 1 else f"{default_name}_{index}"
            definitions.append(definition)

        _check_unique_names(definitions)
        return definitions


def _check_unique_names(definitions: List[ClipDefinition]):
    names = [d.name for d in definitions]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate clip names: {', '.join(duplicates)}")
