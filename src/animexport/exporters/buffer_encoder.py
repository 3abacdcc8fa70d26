"""
Buffer Encoder

Flattens dense keyframe tables into glTF sampler Input/Output arrays and
writes them through a buffer allocator.
"""

import logging
from typing import List, Optional, Protocol, Sequence, Tuple

import numpy as np
import pygltflib

from ..animation.animation import InterpolationType, PropertyTarget
from ..animation.curve_aggregator import DenseTable
from ..config.settings import WRITE_OUTPUT_BOUNDS
from ..core.errors import InvariantViolation, UnsupportedArity

logger = logging.getLogger(__name__)

# Element count -> accessor type for vector-valued properties
VECTOR_ACCESSOR_TYPES = {
    1: pygltflib.SCALAR,
    3: pygltflib.VEC3,
    4: pygltflib.VEC4,
}

COMPONENT_COUNTS = {
    pygltflib.SCALAR: 1,
    pygltflib.VEC2: 2,
    pygltflib.VEC3: 3,
    pygltflib.VEC4: 4,
    pygltflib.MAT2: 4,
    pygltflib.MAT3: 9,
    pygltflib.MAT4: 16,
}


class BufferAllocator(Protocol):
    """Destination container side of the encoder."""

    def append_to_buffer(
        self,
        buffer_index: int,
        values: np.ndarray,
        target: Optional[int] = None,
        min_bounds: Optional[Sequence[float]] = None,
        max_bounds: Optional[Sequence[float]] = None,
        accessor_type: str = pygltflib.SCALAR,
    ) -> int:
        ...

    def set_bounds(self, accessor_index: int, min_bounds: Sequence[float], max_bounds: Sequence[float]):
        ...


def vector_accessor_type(element_count: int) -> str:
    """
    Accessor type for packing ``element_count`` values per sample.

    Raises:
        UnsupportedArity: if glTF has no vector type of that size
    """
    try:
        return VECTOR_ACCESSOR_TYPES[element_count]
    except KeyError:
        raise UnsupportedArity(element_count) from None


def output_accessor_type(target: PropertyTarget, element_count: int) -> str:
    """
    Output accessor type for a property.

    Morph weights always use SCALAR with one element per morph target
    per sample, whatever the morph target count.
    """
    if target == PropertyTarget.BLEND_SHAPE:
        return pygltflib.SCALAR
    return vector_accessor_type(element_count)


class EncodedArrayPair:
    """
    Sampler Input and Output arrays ready for a buffer.

    Input holds strictly ascending times. Output holds one full element
    vector per time, concatenated in time order.
    """

    def __init__(self, input: np.ndarray, output: np.ndarray, element_count: int,
                 accessor_type: str, interpolation: InterpolationType):
        self.input = input
        self.output = output
        self.element_count = element_count
        self.accessor_type = accessor_type
        self.interpolation = interpolation

    @property
    def sample_count(self) -> int:
        """Number of keyframes (len(Output) / element_count)."""
        return len(self.output) // self.element_count

    @property
    def output_accessor_count(self) -> int:
        """Element count of the Output accessor (depends on its type)."""
        return len(self.output) // COMPONENT_COUNTS[self.accessor_type]

    @property
    def input_bounds(self) -> Tuple[List[float], List[float]]:
        return [float(self.input.min())], [float(self.input.max())]

    @property
    def output_bounds(self) -> Tuple[List[float], List[float]]:
        """Per-component min/max of the Output accessor."""
        components = self.output.reshape(-1, COMPONENT_COUNTS[self.accessor_type])
        return components.min(axis=0).tolist(), components.max(axis=0).tolist()

    def validate(self):
        """Raise InvariantViolation if the arrays break the sampler layout."""
        if len(self.input) == 0:
            raise InvariantViolation("Encoded sampler has no keyframes")
        if len(self.output) != len(self.input) * self.element_count:
            raise InvariantViolation(
                f"Output length {len(self.output)} != {len(self.input)} keys x {self.element_count} elements"
            )
        if np.any(np.diff(self.input) <= 0):
            raise InvariantViolation("Input times are not strictly ascending")
        if len(self.output) % COMPONENT_COUNTS[self.accessor_type]:
            raise InvariantViolation(f"Output length {len(self.output)} does not fit {self.accessor_type}")

    def __repr__(self):
        return (f"EncodedArrayPair(keys={len(self.input)}, elements={self.element_count}, "
                f"type={self.accessor_type}, {self.interpolation.value})")


class BufferEncoder:
    """
    Encodes finalized tables and writes them to a glTF buffer.

    Encoding never touches the buffer. Writing happens only for pairs
    that passed validation, so a failed bucket leaves no bytes behind.
    """

    def __init__(self, write_output_bounds: bool = WRITE_OUTPUT_BOUNDS):
        self.write_output_bounds = write_output_bounds

    def encode(self, table: DenseTable) -> EncodedArrayPair:
        """
        Flatten a dense table into Input/Output arrays.

        Args:
            table: Finalized, time-sorted table

        Returns:
            Validated EncodedArrayPair

        Raises:
            UnsupportedArity: if the element count has no accessor type
        """
        accessor_type = output_accessor_type(table.target, table.element_count)

        pair = EncodedArrayPair(
            input=np.ascontiguousarray(table.times, dtype='<f4'),
            output=np.ascontiguousarray(table.values, dtype='<f4').reshape(-1),
            element_count=table.element_count,
            accessor_type=accessor_type,
            interpolation=table.interpolation,
        )
        pair.validate()
        return pair

    def write(self, pair: EncodedArrayPair, allocator: BufferAllocator, buffer_index: int) -> Tuple[int, int]:
        """
        Append a pair's arrays to a buffer.

        Args:
            pair: Encoded arrays
            allocator: Destination buffer/accessor allocator
            buffer_index: Buffer to extend

        Returns:
            (input accessor index, output accessor index)
        """
        input_min, input_max = pair.input_bounds
        input_accessor = allocator.append_to_buffer(
            buffer_index,
            pair.input,
            None,
            input_min,
            input_max,
            accessor_type=pygltflib.SCALAR,
        )

        output_accessor = allocator.append_to_buffer(
            buffer_index,
            pair.output,
            accessor_type=pair.accessor_type,
        )
        if self.write_output_bounds:
            allocator.set_bounds(output_accessor, *pair.output_bounds)

        logger.debug("Wrote %r as accessors %d/%d", pair, input_accessor, output_accessor)
        return input_accessor, output_accessor
