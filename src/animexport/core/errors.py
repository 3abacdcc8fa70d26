"""Exceptions raised by the animation export pipeline."""


class AnimationExportError(Exception):
    """Base class for export failures."""


class UnsupportedArity(AnimationExportError, ValueError):
    """Element count has no matching glTF accessor type."""

    def __init__(self, element_count: int):
        super().__init__(f"No accessor type for {element_count} elements per sample")
        self.element_count = element_count


class InvariantViolation(AnimationExportError, RuntimeError):
    """Internal inconsistency between pipeline stages. Not recoverable."""
