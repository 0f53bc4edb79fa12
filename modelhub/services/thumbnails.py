"""
Thumbnail providers.

Real preview rendering happens elsewhere; the catalog only needs something
that turns a stored file location into an image URL.
"""
import random
from pathlib import Path
from typing import Protocol, Sequence

PLACEHOLDER_THUMBNAILS = (
    "https://images.unsplash.com/photo-1618005198919-d3d4b5a92ead",
    "https://images.unsplash.com/photo-1563089145-599997674d42",
    "https://images.unsplash.com/photo-1558618666-fcd25c85cd64",
    "https://images.unsplash.com/photo-1633332755192-727a05c4013d",
)


class ThumbnailProvider(Protocol):
    def generate(self, file_location: Path) -> str:
        ...


class PlaceholderThumbnailProvider:
    """Picks one of a fixed set of stock preview images."""

    def __init__(self, images: Sequence[str] = PLACEHOLDER_THUMBNAILS, size: str = "w=400&h=300&fit=crop"):
        self.images = tuple(images)
        self.size = size

    def generate(self, file_location: Path) -> str:
        return f"{random.choice(self.images)}?{self.size}"
