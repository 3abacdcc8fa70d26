"""
AnimExport - keyframe clip to glTF animation exporter

Merges per-axis keyframe curves into dense per-property tables and
encodes them as glTF animation channels, samplers and accessors.
"""

# Configuration
from .config.settings import *

# Core
from .core.errors import AnimationExportError, InvariantViolation, UnsupportedArity
from .core.scene_graph import SceneGraph, SceneNode

# Animation
from .animation import (
    AnimationClip,
    AnimationRecord,
    AxisSample,
    CurveAggregator,
    CurveBinding,
    InterpolationType,
    PropertyClassifier,
    PropertyTarget,
    SamplerChannelBuilder,
    TangentMode,
)

# Export
from .exporters import AnimationExporter, BufferEncoder, ExportedAnimation, GltfBufferWriter

# Loaders
from .loaders import ClipLoader

__version__ = "0.1.0"
__all__ = [
    # Config (exported via *)
    # Core
    "AnimationExportError",
    "InvariantViolation",
    "UnsupportedArity",
    "SceneGraph",
    "SceneNode",
    # Animation
    "AnimationClip",
    "AnimationRecord",
    "AxisSample",
    "CurveAggregator",
    "CurveBinding",
    "InterpolationType",
    "PropertyClassifier",
    "PropertyTarget",
    "SamplerChannelBuilder",
    "TangentMode",
    # Export
    "AnimationExporter",
    "BufferEncoder",
    "ExportedAnimation",
    "GltfBufferWriter",
    # Loaders
    "ClipLoader",
]
