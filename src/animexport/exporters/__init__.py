"""Encoding and writing of exported animations into glTF documents."""

from .buffer_encoder import BufferEncoder, EncodedArrayPair, output_accessor_type, vector_accessor_type
from .gltf_buffer_writer import GltfBufferWriter
from .animation_exporter import AnimationExporter, ExportedAnimation, SkippedBinding

__all__ = [
    'BufferEncoder',
    'EncodedArrayPair',
    'output_accessor_type',
    'vector_accessor_type',
    'GltfBufferWriter',
    'AnimationExporter',
    'ExportedAnimation',
    'SkippedBinding',
]
