"""Loader utilities for data-driven animation clips."""

from .clip_loader import BindingDefinition, ClipDefinition, ClipLoader

__all__ = ['BindingDefinition', 'ClipDefinition', 'ClipLoader']
