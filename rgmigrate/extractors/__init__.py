"""Readers for Resource Governor configuration."""

from .base import BaseExtractor, ExtractionResult
from .governor_extractor import GovernorExtractor

__all__ = [
    "BaseExtractor",
    "ExtractionResult",
    "GovernorExtractor",
]
