"""Tests for curve aggregation and densification"""

import pytest
import numpy as np

from src.animexport.animation.animation import AxisSample, InterpolationType, PropertyTarget, TangentMode
from src.animexport.animation.curve_aggregator import CurveAggregator, apply_handedness, densify
from src.animexport.core.errors import InvariantViolation


def _samples(*pairs, tangent=TangentMode.FREE):
    return [AxisSample(t, v, tangent) for t, v in pairs]


def test_densification_fills_from_nearest_earlier_key():
    """Ragged axes merge into one row per distinct time"""
    aggregator = CurveAggregator()
    aggregator.add_axis_samples(0, PropertyTarget.TRANSLATION, 0, 3, _samples((0.0, 2.0), (1.0, 4.0)))
    bucket = aggregator.add_axis_samples(0, PropertyTarget.TRANSLATION, 1, 3,
                                         _samples((0.0, 10.0), (0.5, 20.0), (1.0, 30.0)))

    table = aggregator.finalize(bucket)

    assert np.allclose(table.times, [0.0, 0.5, 1.0])
    assert table.values.shape == (3, 3)
    # Axis A at t=0.5 repeats its t=0 value
    assert np.allclose(table.values[:, 0], [2.0, 2.0, 4.0])
    assert np.allclose(table.values[:, 1], [10.0, 20.0, 30.0])


def test_densification_falls_back_to_earliest_value():
    """Slots with nothing earlier take the first value keyed for them"""
    values = np.array([[0.0, 1.0], [5.0, 2.0], [0.0, 3.0]])
    filled = np.array([[False, True], [True, True], [False, True]])

    dense = densify(values, filled)

    assert np.allclose(dense[:, 0], [5.0, 5.0, 5.0])
    assert np.allclose(dense[:, 1], [1.0, 2.0, 3.0])


def test_unkeyed_slot_uses_defaults():
    """Slots no curve touched take the provided rest values"""
    aggregator = CurveAggregator()
    bucket = aggregator.add_axis_samples(0, PropertyTarget.SCALE, 0, 3, _samples((0.0, 2.0), (1.0, 3.0)))

    table = aggregator.finalize(bucket, defaults=(1.0, 1.0, 1.0))

    assert np.allclose(table.values, [[2.0, 1.0, 1.0], [3.0, 1.0, 1.0]])


def test_zero_is_a_real_value():
    """A keyed 0.0 is kept, not treated as a hole"""
    aggregator = CurveAggregator()
    aggregator.add_axis_samples(0, PropertyTarget.TRANSLATION, 0, 3, _samples((0.0, 7.0), (1.0, 0.0)))
    bucket = aggregator.add_axis_samples(0, PropertyTarget.TRANSLATION, 1, 3, _samples((0.0, 1.0), (1.0, 1.0)))

    table = aggregator.finalize(bucket)
    assert table.values[1, 0] == 0.0


def test_blend_shape_values_are_scaled():
    """Blend shape percentages become weight fractions"""
    aggregator = CurveAggregator()
    bucket = aggregator.add_axis_samples(3, PropertyTarget.BLEND_SHAPE, 0, 1, _samples((0.0, 50.0)))

    table = aggregator.finalize(bucket)
    assert np.isclose(table.values[0, 0], 0.5)


def test_rotation_handedness_flips_z():
    """Rotation rows get the z sign flip; identity is untouched"""
    rows = np.array([[0.0, 0.0, 1.0, 0.0], [0.0, 0.0, 0.0, 1.0]])

    corrected = apply_handedness(PropertyTarget.ROTATION, rows)

    assert np.array_equal(corrected[0], [0.0, 0.0, -1.0, 0.0])
    assert np.array_equal(corrected[1], [0.0, 0.0, 0.0, 1.0])
    # No negative zeros left behind
    assert not np.signbit(corrected[1, 2])


def test_translation_passes_through():
    """Translation and scale rows are not corrected"""
    rows = np.array([[1.0, -2.0, 3.0]])
    assert np.array_equal(apply_handedness(PropertyTarget.TRANSLATION, rows), rows)
    assert np.array_equal(apply_handedness(PropertyTarget.SCALE, rows), rows)


def test_rest_rotation_keeps_its_sign():
    """Rest values fill unkeyed slots without being flipped again"""
    aggregator = CurveAggregator()
    bucket = aggregator.add_axis_samples(0, PropertyTarget.ROTATION, 3, 4, _samples((0.0, 0.7071)))

    table = aggregator.finalize(bucket, defaults=(0.0, 0.0, 0.7071, 0.7071))

    assert np.allclose(table.values, [[0.0, 0.0, 0.7071, 0.7071]])


def test_first_tangent_mode_wins():
    """Interpolation comes from the first sample ever added"""
    aggregator = CurveAggregator()
    aggregator.add_axis_samples(0, PropertyTarget.TRANSLATION, 0, 3,
                                _samples((0.0, 0.0), (1.0, 1.0), tangent=TangentMode.CONSTANT))
    bucket = aggregator.add_axis_samples(0, PropertyTarget.TRANSLATION, 1, 3,
                                         _samples((0.0, 0.0), tangent=TangentMode.LINEAR))

    assert bucket.interpolation == InterpolationType.STEP
    assert aggregator.finalize(bucket).interpolation == InterpolationType.STEP


def test_one_sampler_per_node_and_target():
    """Axis curves of one property share a bucket and sampler"""
    aggregator = CurveAggregator()
    a = aggregator.add_axis_samples(0, PropertyTarget.TRANSLATION, 0, 3, _samples((0.0, 0.0)))
    b = aggregator.add_axis_samples(1, PropertyTarget.TRANSLATION, 0, 3, _samples((0.0, 0.0)))
    c = aggregator.add_axis_samples(0, PropertyTarget.TRANSLATION, 2, 3, _samples((0.0, 0.0)))
    d = aggregator.add_axis_samples(0, PropertyTarget.ROTATION, 3, 4, _samples((0.0, 1.0)))

    assert a is c
    assert [a.sampler_index, b.sampler_index, d.sampler_index] == [0, 1, 2]
    assert len(aggregator.buckets) == 3


def test_duplicate_times_merge_into_one_row():
    """Keys at the same time on different axes share a row"""
    aggregator = CurveAggregator()
    aggregator.add_axis_samples(0, PropertyTarget.TRANSLATION, 0, 3, _samples((0.25, 1.0)))
    bucket = aggregator.add_axis_samples(0, PropertyTarget.TRANSLATION, 2, 3, _samples((0.25, 3.0)))

    assert len(bucket) == 1
    row = bucket.sorted_rows()[0]
    assert list(row.filled) == [True, False, True]


def test_finalize_does_not_mutate_bucket():
    """Finalizing reads the bucket without filling it in place"""
    aggregator = CurveAggregator()
    bucket = aggregator.add_axis_samples(0, PropertyTarget.TRANSLATION, 0, 3, _samples((0.0, 1.0)))

    aggregator.finalize(bucket)
    assert not bucket.sorted_rows()[0].is_complete


def test_element_count_mismatch_is_invariant_violation():
    """A bucket keeps the element count it was created with"""
    aggregator = CurveAggregator()
    aggregator.add_axis_samples(0, PropertyTarget.BLEND_SHAPE, 0, 2, _samples((0.0, 1.0)))

    with pytest.raises(InvariantViolation):
        aggregator.add_axis_samples(0, PropertyTarget.BLEND_SHAPE, 0, 3, _samples((0.0, 1.0)))


def test_negative_sample_time_rejected():
    """Sample times must be non-negative"""
    with pytest.raises(ValueError):
        AxisSample(-0.1, 1.0)
