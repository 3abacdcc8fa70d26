"""
Animation System

Source keyframe curves, property classification and per-property
keyframe aggregation for glTF export.
"""

from .animation import (
    AnimationClip, AnimationRecord, AxisSample, ChannelRecord, CurveBinding,
    InterpolationType, PropertyTarget, SamplerRecord, TangentMode,
)
from .property_classifier import PropertyClassifier, classify, element_offset
from .sampler_builder import SamplerChannelBuilder
from .curve_aggregator import AggregationBucket, CurveAggregator, DenseTable, KeyframeRow, densify

__all__ = [
    'AnimationClip',
    'AnimationRecord',
    'AxisSample',
    'ChannelRecord',
    'CurveBinding',
    'InterpolationType',
    'PropertyTarget',
    'SamplerRecord',
    'TangentMode',
    'PropertyClassifier',
    'classify',
    'element_offset',
    'SamplerChannelBuilder',
    'AggregationBucket',
    'CurveAggregator',
    'DenseTable',
    'KeyframeRow',
    'densify',
]
