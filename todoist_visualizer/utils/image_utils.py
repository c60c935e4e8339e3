"""Placeholder image generation for selected items."""

import hashlib
import logging
import os
import re
from typing import Protocol, Tuple

from PIL import Image, ImageDraw

from todoist_visualizer.models import RemoteItem

logger = logging.getLogger(__name__)

PLACEHOLDER_PATH = "/api/placeholder/{width}/{height}"


class ImageGenerator(Protocol):
    """Produces an image reference for one item."""

    def generate(self, item: RemoteItem) -> str:
        ...


def safe_filename(item_id: str) -> str:
    """Make an item id usable as a file name.

    Args:
        item_id: Item id to convert

    Returns:
        The id with anything but letters, digits, ``-`` and ``_`` replaced
    """
    name = re.sub(r"[^A-Za-z0-9_-]", "_", item_id)
    return name or "item"


def item_color(item_id: str) -> Tuple[int, int, int]:
    """Derive a stable background colour from an item id."""
    digest = hashlib.md5(item_id.encode("utf-8"), usedforsecurity=False).digest()
    # Keep the colour light enough for dark text.
    return tuple(128 + b // 2 for b in digest[:3])


class PlaceholderImageGenerator:
    """Returns the same fixed placeholder reference for every item."""

    def __init__(self, width: int = 300, height: int = 200):
        self.width = width
        self.height = height

    def generate(self, item: RemoteItem) -> str:
        return PLACEHOLDER_PATH.format(width=self.width, height=self.height)


class PillowImageGenerator:
    """Renders a placeholder PNG per item into an output directory."""

    def __init__(self, output_dir: str, width: int = 300, height: int = 200):
        """Initialize the generator.

        Args:
            output_dir: Directory the PNG files are written to; created if missing
            width: Image width in pixels
            height: Image height in pixels
        """
        self.output_dir = output_dir
        self.width = width
        self.height = height

    def generate(self, item: RemoteItem) -> str:
        """Render the placeholder image for an item.

        Returns:
            Path of the written PNG file

        Raises:
            OSError: If the file cannot be written
        """
        os.makedirs(self.output_dir, exist_ok=True)
        path = os.path.join(self.output_dir, f"{safe_filename(item.id)}.png")

        with Image.new("RGB", (self.width, self.height), item_color(item.id)) as img:
            draw = ImageDraw.Draw(img)
            draw.rectangle(
                (0, 0, self.width - 1, self.height - 1), outline=(64, 64, 64), width=2
            )
            draw.text((10, 10), item.name or item.id, fill=(32, 32, 32))
            draw.text((10, self.height - 20), item.kind.value, fill=(32, 32, 32))
            img.save(path, format="PNG")

        logger.debug("Wrote placeholder for %s to %s", item.id, path)
        return path
