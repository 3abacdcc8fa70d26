"""
glTF Buffer Writer

Buffer/accessor allocator over a pygltflib document: appends float32
arrays as new buffer views and accessors, reads accessors back, and
stores the grown buffers in the document.
"""

import base64
import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Sequence

import numpy as np
import pygltflib

from ..config.settings import BUFFER_ALIGNMENT, FLOAT_COMPONENT_TYPE
from .buffer_encoder import COMPONENT_COUNTS

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:application/octet-stream;base64,"


class GltfBufferWriter:
    """
    Grows the binary buffers of a glTF document.

    Buffer bytes are held in memory while exporting; call flush() before
    saving the document. Appends and animation list updates are serialized
    so several clip exports may share one writer.
    """

    def __init__(self, gltf: pygltflib.GLTF2, base_dir: Optional[Path] = None, output_dir: Optional[Path] = None):
        """
        Initialize writer.

        Args:
            gltf: Document to extend
            base_dir: Directory external buffer URIs are read from
            output_dir: Directory external buffers are written to (base_dir if None)
        """
        self.gltf = gltf
        self.base_dir = Path(base_dir) if base_dir is not None else None
        self.output_dir = Path(output_dir) if output_dir is not None else self.base_dir
        self._data: Dict[int, bytearray] = {}
        self._lock = threading.RLock()

    # Buffers ---------------------------------------------------------------

    def ensure_buffer(self) -> int:
        """Return the index of the first buffer, creating an empty one if needed."""
        with self._lock:
            if not self.gltf.buffers:
                self.gltf.buffers.append(pygltflib.Buffer(byteLength=0))
                self._data[0] = bytearray()
            return 0

    def buffer_data(self, buffer_index: int) -> bytearray:
        """In-memory bytes of a buffer, loaded from the document on first use."""
        if buffer_index not in self._data:
            if not 0 <= buffer_index < len(self.gltf.buffers):
                raise IndexError(f"Buffer {buffer_index} does not exist")
            self._data[buffer_index] = bytearray(self._load_buffer(self.gltf.buffers[buffer_index]))
        return self._data[buffer_index]

    def _load_buffer(self, buffer: pygltflib.Buffer) -> bytes:
        if buffer.uri:
            if buffer.uri.startswith("data:"):
                data = self.gltf.get_data_from_buffer_uri(buffer.uri)
            else:
                data = (_resolve(self.base_dir) / buffer.uri).read_bytes()
        else:
            # Embedded buffer (GLB)
            data = self.gltf.binary_blob() or b""
        return bytes(data[:buffer.byteLength]) if buffer.byteLength else bytes(data)

    # Allocation ------------------------------------------------------------

    def append_to_buffer(
        self,
        buffer_index: int,
        values: np.ndarray,
        target: Optional[int] = None,
        min_bounds: Optional[Sequence[float]] = None,
        max_bounds: Optional[Sequence[float]] = None,
        accessor_type: str = pygltflib.SCALAR,
    ) -> int:
        """
        Append float values as a new buffer view and accessor.

        Args:
            buffer_index: Buffer to extend
            values: Flat float array (stored as little-endian float32)
            target: Buffer view target (None for animation data)
            min_bounds: Accessor min, stored as given
            max_bounds: Accessor max, stored as given
            accessor_type: SCALAR, VEC3, VEC4...

        Returns:
            Index of the new accessor
        """
        raw = np.ascontiguousarray(values, dtype='<f4').reshape(-1)
        components = COMPONENT_COUNTS[accessor_type]
        if len(raw) % components:
            raise ValueError(f"{len(raw)} values do not form whole {accessor_type} elements")

        with self._lock:
            data = self.buffer_data(buffer_index)
            padding = (-len(data)) % BUFFER_ALIGNMENT
            data.extend(b"\x00" * padding)
            offset = len(data)
            data.extend(raw.tobytes())

            self.gltf.bufferViews.append(pygltflib.BufferView(
                buffer=buffer_index,
                byteOffset=offset,
                byteLength=raw.nbytes,
                target=target,
            ))
            self.gltf.accessors.append(pygltflib.Accessor(
                bufferView=len(self.gltf.bufferViews) - 1,
                byteOffset=0,
                componentType=FLOAT_COMPONENT_TYPE,
                count=len(raw) // components,
                type=accessor_type,
                min=list(min_bounds) if min_bounds is not None else None,
                max=list(max_bounds) if max_bounds is not None else None,
            ))
            return len(self.gltf.accessors) - 1

    def set_bounds(self, accessor_index: int, min_bounds: Sequence[float], max_bounds: Sequence[float]):
        """Store explicit min/max on an accessor."""
        accessor = self.gltf.accessors[accessor_index]
        components = COMPONENT_COUNTS[accessor.type]
        if len(min_bounds) != components or len(max_bounds) != components:
            raise ValueError(f"{accessor.type} accessor needs {components} bound values")
        accessor.min = [float(v) for v in min_bounds]
        accessor.max = [float(v) for v in max_bounds]

    def add_animation(self, animation: pygltflib.Animation) -> int:
        """Append an animation to the document, returning its index."""
        with self._lock:
            self.gltf.animations.append(animation)
            return len(self.gltf.animations) - 1

    # Read back -------------------------------------------------------------

    def read_accessor(self, accessor_index: int) -> np.ndarray:
        """Read back a float accessor written by append_to_buffer as a flat array."""
        accessor = self.gltf.accessors[accessor_index]
        if accessor.componentType != FLOAT_COMPONENT_TYPE:
            raise ValueError(f"Accessor {accessor_index} is not a float accessor")
        buffer_view = self.gltf.bufferViews[accessor.bufferView]
        if buffer_view.byteStride:
            raise ValueError(f"Accessor {accessor_index} is interleaved")

        offset = (buffer_view.byteOffset or 0) + (accessor.byteOffset or 0)
        count = accessor.count * COMPONENT_COUNTS[accessor.type]
        data = bytes(self.buffer_data(buffer_view.buffer))
        return np.frombuffer(data, dtype="<f4", count=count, offset=offset).copy()

    # Output ----------------------------------------------------------------

    def flush(self):
        """
        Store every grown buffer back into the document.

        External buffers are written below output_dir. When that differs from
        base_dir, untouched external buffers are copied there as well.
        """
        with self._lock:
            if self._relocating():
                for buffer_index, buffer in enumerate(self.gltf.buffers):
                    if buffer.uri and not buffer.uri.startswith("data:"):
                        self.buffer_data(buffer_index)

            for buffer_index, data in sorted(self._data.items()):
                padding = (-len(data)) % BUFFER_ALIGNMENT
                data.extend(b"\x00" * padding)

                buffer = self.gltf.buffers[buffer_index]
                buffer.byteLength = len(data)
                if not buffer.uri:
                    self.gltf.set_binary_blob(bytes(data))
                elif buffer.uri.startswith("data:"):
                    buffer.uri = DATA_URI_PREFIX + base64.b64encode(bytes(data)).decode("ascii")
                else:
                    target = _resolve(self.output_dir) / buffer.uri
                    target.parent.mkdir(parents=True, exist_ok=True)
                    target.write_bytes(bytes(data))
                logger.debug("Flushed buffer %d (%d bytes)", buffer_index, len(data))

    def _relocating(self) -> bool:
        return _resolve(self.output_dir) != _resolve(self.base_dir)


def _resolve(directory: Optional[Path]) -> Path:
    return (directory if directory is not None else Path.cwd()).resolve()
