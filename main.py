#!/usr/bin/env python3
"""
AnimExport - Main Entry Point

Exports keyframe clips described in JSON into a glTF/GLB document as
glTF animations.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pygltflib

from src.animexport import (
    # Configuration
    DEFAULT_BUFFER_INDEX, LOG_FORMAT, LOG_LEVEL,
    # Core
    SceneGraph,
    # Export
    AnimationExporter, ClipLoader, GltfBufferWriter,
)


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export keyframe clips as glTF animations.")
    parser.add_argument("model", type=Path, help="Input .gltf or .glb document")
    parser.add_argument("clips", type=Path, nargs="+", help="JSON clip descriptor file(s)")
    parser.add_argument("-o", "--output", type=Path, help="Output document (defaults to overwriting the input)")
    parser.add_argument("--root", help="Name of the node clip paths are relative to")
    parser.add_argument("--buffer", type=int, default=DEFAULT_BUFFER_INDEX, help="Buffer to append animation data to")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def export(model: Path, clip_files: List[Path], output: Path, root: Optional[str] = None,
           buffer_index: int = DEFAULT_BUFFER_INDEX) -> int:
    """
    Export every clip from ``clip_files`` into ``model`` and save to ``output``.

    Returns:
        Number of animations written
    """
    model, output = model.resolve(), output.resolve()
    gltf = pygltflib.GLTF2().load(str(model))
    if output.suffix.lower() == ".glb":
        # External files are read relative to the input before embedding
        gltf.convert_buffers(pygltflib.BufferFormat.DATAURI)
    scene = SceneGraph.from_gltf(gltf, root=root)
    logger.info("Loaded %s: %r", model, scene)

    loader = ClipLoader()
    clips = []
    for clip_file in clip_files:
        clips.extend(loader.load_clips(clip_file.resolve()))

    writer = GltfBufferWriter(gltf, base_dir=model.parent, output_dir=output.parent)
    if not gltf.buffers:
        buffer_index = writer.ensure_buffer()

    before = len(gltf.animations)
    AnimationExporter().export_clips(clips, scene, writer, buffer_index)
    writer.flush()

    if output.suffix.lower() == ".glb":
        gltf.convert_buffers(pygltflib.BufferFormat.BINARYBLOB)
    elif any(buffer.uri is None for buffer in gltf.buffers):
        gltf.convert_buffers(pygltflib.BufferFormat.DATAURI)
    output.parent.mkdir(parents=True, exist_ok=True)
    gltf.save(str(output))

    written = len(gltf.animations) - before
    logger.info("Wrote %d animation(s) to %s", written, output)
    return written


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else LOG_LEVEL, format=LOG_FORMAT)

    try:
        export(args.model, args.clips, args.output or args.model, root=args.root, buffer_index=args.buffer)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
