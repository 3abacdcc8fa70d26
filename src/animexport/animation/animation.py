"""
Animation

Source keyframe curves and the glTF animation records built from them.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import pygltflib


class InterpolationType(Enum):
    """Animation interpolation types."""
    LINEAR = "LINEAR"
    STEP = "STEP"
    CUBICSPLINE = "CUBICSPLINE"


class TangentMode(Enum):
    """Tangent mode attached to a source key."""
    FREE = "free"
    AUTO = "auto"
    LINEAR = "linear"
    CONSTANT = "constant"
    CLAMPED_AUTO = "clamped_auto"


class PropertyTarget(Enum):
    """Animated property a curve binding drives."""
    TRANSLATION = "translation"
    ROTATION = "rotation"
    EULER_ROTATION = "euler_rotation"
    SCALE = "scale"
    BLEND_SHAPE = "weights"  # Morph target weights
    UNSUPPORTED = "unsupported"

    @property
    def gltf_path(self) -> Optional[str]:
        """glTF channel target path, or None if the target cannot be exported."""
        if self in (PropertyTarget.EULER_ROTATION, PropertyTarget.UNSUPPORTED):
            return None
        return self.value

    @property
    def element_count(self) -> Optional[int]:
        """
        Fixed number of elements per sample.

        Returns None for blend shapes (count depends on the mesh) and
        for unsupported properties.
        """
        return _ELEMENT_COUNTS.get(self)

    @property
    def is_exportable(self) -> bool:
        return self.gltf_path is not None


_ELEMENT_COUNTS = {
    PropertyTarget.TRANSLATION: 3,
    PropertyTarget.ROTATION: 4,
    PropertyTarget.EULER_ROTATION: 3,
    PropertyTarget.SCALE: 3,
}


class AxisSample:
    """
    Single key on one axis curve.

    Stores time, value and the key's tangent mode.
    """

    __slots__ = ("time", "value", "tangent_mode")

    def __init__(self, time: float, value: float, tangent_mode: TangentMode = TangentMode.FREE):
        """
        Initialize sample.

        Args:
            time: Time in seconds, finite and non-negative
            value: Curve value at this time
            tangent_mode: Tangent mode of the key
        """
        time = float(time)
        if not math.isfinite(time) or time < 0.0:
            raise ValueError(f"Sample time must be finite and non-negative, got {time}")
        self.time = time
        self.value = float(value)
        self.tangent_mode = TangentMode(tangent_mode)

    def __eq__(self, other):
        if not isinstance(other, AxisSample):
            return NotImplemented
        return (self.time, self.value, self.tangent_mode) == (other.time, other.value, other.tangent_mode)

    def __repr__(self):
        return f"AxisSample(t={self.time:.3f}, v={self.value}, {self.tangent_mode.value})"


class CurveBinding:
    """
    One raw per-axis curve of a clip.

    Ties an ordered list of samples to a node path and a property identifier
    such as ``m_LocalPosition.x``.
    """

    def __init__(self, path: str, property_name: str, samples: Optional[List[AxisSample]] = None):
        self.path = path
        self.property_name = property_name
        self.samples: List[AxisSample] = list(samples) if samples else []

    def add_sample(self, time: float, value: float, tangent_mode: TangentMode = TangentMode.FREE):
        """Append a key to this curve."""
        self.samples.append(AxisSample(time, value, tangent_mode))

    @property
    def tangent_mode(self) -> TangentMode:
        """Tangent mode of the first key (FREE for an empty curve)."""
        if not self.samples:
            return TangentMode.FREE
        return self.samples[0].tangent_mode

    def __repr__(self):
        return f"CurveBinding(path='{self.path}', property='{self.property_name}', keys={len(self.samples)})"


class AnimationClip:
    """
    Source animation clip.

    A clip is an ordered collection of curve bindings. Binding order is
    preserved and determines sampler and channel ordering on export.
    """

    def __init__(self, name: str, bindings: Optional[List[CurveBinding]] = None):
        self.name = name
        self.bindings: List[CurveBinding] = list(bindings) if bindings else []

    def add_binding(self, binding: CurveBinding):
        self.bindings.append(binding)

    @property
    def duration(self) -> float:
        """Latest key time across all bindings."""
        times = [s.time for b in self.bindings for s in b.samples]
        return max(times) if times else 0.0

    def __repr__(self):
        return f"AnimationClip(name='{self.name}', duration={self.duration:.2f}s, bindings={len(self.bindings)})"


@dataclass
class ChannelRecord:
    """A (node, property) pairing driven by one sampler."""

    node: int
    target: PropertyTarget
    sampler: int


@dataclass
class SamplerRecord:
    """Input/Output accessor pair plus interpolation."""

    interpolation: InterpolationType = InterpolationType.LINEAR
    input: Optional[int] = None
    output: Optional[int] = None

    @property
    def is_encoded(self) -> bool:
        return self.input is not None and self.output is not None


@dataclass
class AnimationRecord:
    """
    Exported animation: ordered channels and samplers.

    Sampler indices referenced by channels are dense (0..N-1) in the
    order samplers were emitted.
    """

    name: str
    channels: List[ChannelRecord] = field(default_factory=list)
    samplers: List[SamplerRecord] = field(default_factory=list)

    def validate(self):
        """Raise ValueError if a channel points at a missing or unencoded sampler."""
        for channel in self.channels:
            if not 0 <= channel.sampler < len(self.samplers):
                raise ValueError(f"Channel {channel} references missing sampler {channel.sampler}")
            if not self.samplers[channel.sampler].is_encoded:
                raise ValueError(f"Sampler {channel.sampler} has no accessors")

    def to_gltf(self) -> pygltflib.Animation:
        """Convert to a pygltflib animation (accessors must already be assigned)."""
        self.validate()
        return pygltflib.Animation(
            name=self.name,
            channels=[
                pygltflib.AnimationChannel(
                    sampler=channel.sampler,
                    target=pygltflib.AnimationChannelTarget(
                        node=channel.node,
                        path=channel.target.gltf_path,
                    ),
                )
                for channel in self.channels
            ],
            samplers=[
                pygltflib.AnimationSampler(
                    input=sampler.input,
                    output=sampler.output,
                    interpolation=sampler.interpolation.value,
                )
                for sampler in self.samplers
            ],
        )

    def __repr__(self):
        return f"AnimationRecord(name='{self.name}', channels={len(self.channels)}, samplers={len(self.samplers)})"
