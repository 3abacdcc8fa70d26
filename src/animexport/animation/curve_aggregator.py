"""
Curve Aggregator

Merges independently keyed per-axis curves into dense, time-aligned
keyframe tables, one table per (node, property) pair.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from ..config.settings import (
    BLEND_SHAPE_WEIGHT_SCALE,
    DEFAULT_INTERPOLATION,
    HANDEDNESS_SIGNS,
    TANGENT_INTERPOLATION,
)
from ..core.errors import InvariantViolation
from .animation import AxisSample, InterpolationType, PropertyTarget, TangentMode
from .sampler_builder import ChannelKey, SamplerChannelBuilder

logger = logging.getLogger(__name__)


def quantize_time(time: float) -> float:
    """Round a key time to float32 so distinct keys stay distinct once encoded."""
    return float(np.float32(time))


def interpolation_for(tangent_mode: TangentMode) -> InterpolationType:
    """Map a source tangent mode to a glTF interpolation."""
    return InterpolationType(TANGENT_INTERPOLATION.get(tangent_mode.value, DEFAULT_INTERPOLATION))


class KeyframeRow:
    """
    One time plus a partially filled value vector.

    Unfilled slots are tracked by a mask, so a genuine 0.0 key is never
    mistaken for a missing one.
    """

    __slots__ = ("time", "values", "filled")

    def __init__(self, time: float, element_count: int):
        self.time = time
        self.values = np.zeros(element_count, dtype=np.float64)
        self.filled = np.zeros(element_count, dtype=bool)

    def set(self, offset: int, value: float):
        self.values[offset] = value
        self.filled[offset] = True

    @property
    def is_complete(self) -> bool:
        return bool(self.filled.all())

    def __repr__(self):
        slots = ", ".join(f"{v:g}" if f else "_" for v, f in zip(self.values, self.filled))
        return f"KeyframeRow(t={self.time:.3f}, [{slots}])"


class AggregationBucket:
    """
    Sparse keyframe table for one (node, property) pair.

    Rows are keyed by time. The interpolation is taken from the first
    sample ever added; later tangent modes are ignored.
    """

    def __init__(self, node: int, target: PropertyTarget, element_count: int, sampler_index: int):
        """
        Initialize bucket.

        Args:
            node: Target node index
            target: Animated property
            element_count: Vector length of every row
            sampler_index: Sampler allocated for this pair
        """
        self.node = node
        self.target = target
        self.element_count = element_count
        self.sampler_index = sampler_index
        self.interpolation: Optional[InterpolationType] = None
        self.rows: Dict[float, KeyframeRow] = {}

    @property
    def key(self) -> ChannelKey:
        return (self.node, self.target)

    def upsert(self, time: float, offset: int, value: float):
        """Write one value into the row at ``time``, creating the row if needed."""
        time = quantize_time(time)
        row = self.rows.get(time)
        if row is None:
            row = KeyframeRow(time, self.element_count)
            self.rows[time] = row
        row.set(offset, value)

    def sorted_rows(self) -> List[KeyframeRow]:
        return [self.rows[t] for t in sorted(self.rows)]

    def __len__(self):
        return len(self.rows)

    def __repr__(self):
        return (f"AggregationBucket(node={self.node}, target={self.target.value}, "
                f"elements={self.element_count}, rows={len(self.rows)}, sampler={self.sampler_index})")


class DenseTable:
    """Finalized, fully populated keyframe table (read-only)."""

    def __init__(self, node: int, target: PropertyTarget, interpolation: InterpolationType,
                 times: np.ndarray, values: np.ndarray):
        self.node = node
        self.target = target
        self.interpolation = interpolation
        self.times = times
        self.values = values

    @property
    def element_count(self) -> int:
        return self.values.shape[1]

    def __len__(self):
        return len(self.times)

    def __repr__(self):
        return f"DenseTable(node={self.node}, target={self.target.value}, shape={self.values.shape})"


def densify(values: np.ndarray, filled: np.ndarray, defaults: Optional[Sequence[float]] = None) -> np.ndarray:
    """
    Fill every unfilled slot of a time-sorted table.

    An unfilled slot takes the value of the nearest earlier filled row for
    that slot, or the earliest filled value for that slot when nothing
    earlier exists. Slots never filled at all take ``defaults``.

    Args:
        values: (rows, elements) array sorted by time
        filled: Boolean mask of the same shape
        defaults: Per-element fallback for never-keyed slots (zeros if None)

    Returns:
        Dense (rows, elements) array
    """
    rows, elements = values.shape
    if rows == 0:
        return values.copy()

    index = np.arange(rows)[:, None]
    last_filled = np.maximum.accumulate(np.where(filled, index, -1), axis=0)
    first_filled = filled.argmax(axis=0)
    source = np.where(last_filled >= 0, last_filled, first_filled[None, :])
    dense = np.take_along_axis(values, source, axis=0)

    never_keyed = ~filled.any(axis=0)
    if never_keyed.any():
        fallback = np.zeros(elements) if defaults is None else np.asarray(defaults, dtype=np.float64)
        if fallback.shape != (elements,):
            raise InvariantViolation(f"Expected {elements} default values, got {fallback.shape}")
        dense[:, never_keyed] = fallback[never_keyed]

    return dense


def apply_handedness(target: PropertyTarget, values: np.ndarray) -> np.ndarray:
    """Apply the configured per-component sign correction for ``target``."""
    signs = HANDEDNESS_SIGNS.get(target.value)
    if signs is None:
        return values
    signs = np.asarray(signs, dtype=values.dtype)
    if signs.shape[0] != values.shape[1]:
        raise InvariantViolation(
            f"Handedness signs for {target.value} have {signs.shape[0]} components, rows have {values.shape[1]}"
        )
    # + 0.0 turns the -0.0 produced by flipping a zero back into 0.0
    return values * signs + 0.0


class CurveAggregator:
    """
    Owns all aggregation buckets for one clip's export.

    Buckets are kept in creation order, which matches sampler allocation
    order.
    """

    def __init__(self, builder: Optional[SamplerChannelBuilder] = None):
        self.builder = builder if builder is not None else SamplerChannelBuilder()
        self.buckets: Dict[ChannelKey, AggregationBucket] = {}

    def bucket(self, node: int, target: PropertyTarget, element_count: int) -> AggregationBucket:
        """Look up or create the bucket for (node, target)."""
        key = (node, target)
        bucket = self.buckets.get(key)
        if bucket is None:
            bucket = AggregationBucket(node, target, element_count,
                                       self.builder.sampler_index(node, target))
            self.buckets[key] = bucket
            logger.debug("Created %r", bucket)
        elif bucket.element_count != element_count:
            raise InvariantViolation(
                f"Bucket {key} declared with {bucket.element_count} elements, got {element_count}"
            )
        return bucket

    def add_axis_samples(
        self,
        node: int,
        target: PropertyTarget,
        element_offset: int,
        element_count: int,
        samples: Iterable[AxisSample],
    ) -> AggregationBucket:
        """
        Accumulate one axis curve into its (node, target) bucket.

        Args:
            node: Target node index
            target: Animated property
            element_offset: Slot this curve writes
            element_count: Vector length for the property
            samples: Time-ordered keys

        Returns:
            The bucket the samples went into
        """
        if not 0 <= element_offset < element_count:
            raise InvariantViolation(f"Element offset {element_offset} outside [0, {element_count})")

        bucket = self.bucket(node, target, element_count)
        scale = BLEND_SHAPE_WEIGHT_SCALE if target == PropertyTarget.BLEND_SHAPE else 1.0

        for sample in samples:
            if bucket.interpolation is None:
                bucket.interpolation = interpolation_for(sample.tangent_mode)
            bucket.upsert(sample.time, element_offset, sample.value * scale)

        return bucket

    def non_empty(self) -> List[AggregationBucket]:
        """Buckets holding at least one row, in creation order."""
        return [b for b in self.buckets.values() if len(b)]

    def finalize(self, bucket: AggregationBucket, defaults: Optional[Sequence[float]] = None) -> DenseTable:
        """
        Densify and coordinate-convert a bucket.

        The bucket itself is not modified.

        Args:
            bucket: Bucket with all axis curves added
            defaults: Rest values for slots no curve keyed

        Returns:
            DenseTable sorted by time
        """
        rows = bucket.sorted_rows()
        times = np.array([row.time for row in rows], dtype=np.float32)
        values = np.array([row.values for row in rows], dtype=np.float64).reshape(len(rows), bucket.element_count)
        filled = np.array([row.filled for row in rows], dtype=bool).reshape(len(rows), bucket.element_count)

        incomplete = int((~filled).any(axis=1).sum())
        if incomplete:
            logger.debug("Densifying %d of %d rows for node %d %s",
                         incomplete, len(rows), bucket.node, bucket.target.value)

        if defaults is not None:
            # Rest values are already in glTF convention; the signs are their own inverse
            defaults = apply_handedness(bucket.target, np.asarray(defaults, dtype=np.float64).reshape(1, -1))[0]
        dense = densify(values, filled, defaults)
        dense = apply_handedness(bucket.target, dense)

        interpolation = bucket.interpolation or InterpolationType(DEFAULT_INTERPOLATION)
        return DenseTable(bucket.node, bucket.target, interpolation, times, dense.astype(np.float32))
