"""Writers for destination servers."""

from .base import BaseLoader, LoadResult
from .governor_loader import GovernorLoader

__all__ = [
    "BaseLoader",
    "LoadResult",
    "GovernorLoader",
]
