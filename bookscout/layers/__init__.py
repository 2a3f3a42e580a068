"""Layers package initialization."""
from bookscout.layers.dispatch import SourceDispatcher
from bookscout.layers.extraction import ExtractionLayer

__all__ = ["SourceDispatcher", "ExtractionLayer"]
