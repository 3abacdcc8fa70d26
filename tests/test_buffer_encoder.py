"""Tests for sampler array encoding"""

import pytest
import numpy as np
import pygltflib

from src.animexport.animation.animation import InterpolationType, PropertyTarget
from src.animexport.animation.curve_aggregator import DenseTable
from src.animexport.core.errors import InvariantViolation, UnsupportedArity
from src.animexport.exporters.buffer_encoder import (
    BufferEncoder,
    output_accessor_type,
    vector_accessor_type,
)
from src.animexport.exporters.gltf_buffer_writer import GltfBufferWriter


def _table(target, times, rows):
    return DenseTable(
        node=0,
        target=target,
        interpolation=InterpolationType.LINEAR,
        times=np.array(times, dtype=np.float32),
        values=np.array(rows, dtype=np.float32),
    )


def test_vector_accessor_types():
    """Element counts map to SCALAR, VEC3 and VEC4"""
    assert vector_accessor_type(1) == "SCALAR"
    assert vector_accessor_type(3) == "VEC3"
    assert vector_accessor_type(4) == "VEC4"


@pytest.mark.parametrize("count", [0, 2, 5, 16])
def test_unsupported_arity(count):
    """Counts with no vector type fail instead of truncating"""
    with pytest.raises(UnsupportedArity):
        vector_accessor_type(count)


def test_blend_shapes_always_use_scalar_path():
    """Morph weights are scalar elements whatever the morph count"""
    assert output_accessor_type(PropertyTarget.BLEND_SHAPE, 5) == "SCALAR"
    with pytest.raises(UnsupportedArity):
        output_accessor_type(PropertyTarget.TRANSLATION, 5)


def test_five_element_vector_table_fails():
    """A five-element table packed as a vector raises UnsupportedArity"""
    table = _table(PropertyTarget.TRANSLATION, [0.0, 1.0], [[0.0] * 5, [1.0] * 5])

    with pytest.raises(UnsupportedArity):
        BufferEncoder().encode(table)


def test_encode_flattens_rows():
    """Output is row-major with one element vector per time"""
    table = _table(PropertyTarget.TRANSLATION, [0.0, 1.0], [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])

    pair = BufferEncoder().encode(table)

    assert pair.accessor_type == "VEC3"
    assert np.array_equal(pair.input, [0.0, 1.0])
    assert np.array_equal(pair.output, [0.0, 0.0, 0.0, 1.0, 0.0, 0.0])
    assert len(pair.output) == len(pair.input) * pair.element_count
    assert pair.sample_count == 2
    assert pair.output_accessor_count == 2
    assert pair.input_bounds == ([0.0], [1.0])
    assert pair.input.dtype == np.dtype('<f4')


def test_encode_blend_shape_counts():
    """Weights accessor count is keys x morph targets"""
    rows = [[0.1, 0.2, 0.3, 0.4, 0.5], [0.5, 0.4, 0.3, 0.2, 0.1]]
    pair = BufferEncoder().encode(_table(PropertyTarget.BLEND_SHAPE, [0.0, 2.0], rows))

    assert pair.accessor_type == "SCALAR"
    assert pair.sample_count == 2
    assert pair.output_accessor_count == 10
    mins, maxs = pair.output_bounds
    assert np.isclose(mins[0], 0.1)
    assert np.isclose(maxs[0], 0.5)


def test_non_ascending_input_rejected():
    """Encoded times must be strictly increasing"""
    table = _table(PropertyTarget.TRANSLATION, [0.0, 0.0], [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])

    with pytest.raises(InvariantViolation):
        BufferEncoder().encode(table)


def test_write_passes_explicit_input_bounds():
    """Input accessor gets min/max from the encoder"""
    gltf = pygltflib.GLTF2()
    writer = GltfBufferWriter(gltf)
    buffer_index = writer.ensure_buffer()

    rows = [[0.0, 0.0, 0.0, 1.0], [0.0, 0.5, 0.0, 0.5], [0.0, 1.0, 0.0, 0.0]]
    pair = BufferEncoder().encode(_table(PropertyTarget.ROTATION, [0.5, 1.0, 1.5], rows))
    input_index, output_index = BufferEncoder().write(pair, writer, buffer_index)

    input_accessor = gltf.accessors[input_index]
    output_accessor = gltf.accessors[output_index]
    assert input_accessor.type == "SCALAR"
    assert input_accessor.count == 3
    assert input_accessor.min == [0.5]
    assert input_accessor.max == [1.5]
    assert output_accessor.type == "VEC4"
    assert output_accessor.count == 3
    assert output_accessor.min == [0.0, 0.0, 0.0, 0.0]
    assert output_accessor.max == [0.0, 1.0, 0.0, 1.0]


def test_write_without_output_bounds():
    """Output bounds are optional"""
    gltf = pygltflib.GLTF2()
    writer = GltfBufferWriter(gltf)
    pair = BufferEncoder().encode(_table(PropertyTarget.SCALE, [0.0], [[1.0, 1.0, 1.0]]))

    _, output_index = BufferEncoder(write_output_bounds=False).write(pair, writer, writer.ensure_buffer())

    assert gltf.accessors[output_index].min is None
    assert gltf.accessors[output_index].max is None
