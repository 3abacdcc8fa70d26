"""Core export components"""
from .errors import AnimationExportError, InvariantViolation, UnsupportedArity
from .scene_graph import SceneGraph, SceneNode

__all__ = [
    "AnimationExportError",
    "InvariantViolation",
    "UnsupportedArity",
    "SceneGraph",
    "SceneNode",
]
