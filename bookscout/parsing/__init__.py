"""Parsing package initialization."""
from bookscout.parsing.document import PageDocument

__all__ = ["PageDocument"]
