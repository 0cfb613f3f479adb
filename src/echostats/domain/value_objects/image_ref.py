"""Image selection from Spotify image lists.

Hey future me - Spotify returns images as a list sorted by size, largest first:
usually [640px, 300px, 64px], but any of them can be missing. Instead of
scattering `images[1] or images[0] or images[2]` lookups around, the fallback
order lives HERE and can be tested on its own.

Cover fallback order (album cards): medium (index 1), then large (index 0),
then small (index 2).
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

COVER_FALLBACK_ORDER: tuple[int, ...] = (1, 0, 2)


@dataclass(frozen=True)
class Image:
    """One entry of a Spotify `images` array."""

    url: str
    width: int | None = None
    height: int | None = None

    @classmethod
    def from_api(cls, data: Any) -> "Image | None":
        """Parse an image dict, returning None if it has no usable URL."""
        if not isinstance(data, dict):
            return None
        url = data.get("url")
        if not isinstance(url, str) or not url:
            return None
        width = data.get("width")
        height = data.get("height")
        return cls(
            url=url,
            width=width if isinstance(width, int) else None,
            height=height if isinstance(height, int) else None,
        )


def pick_image_url(
    images: Sequence[Image | None],
    order: Sequence[int] = COVER_FALLBACK_ORDER,
) -> str | None:
    """Pick the first available image URL following `order`.

    Args:
        images: Image list as returned by Spotify (may contain None holes)
        order: Indices to try, in preference order

    Returns:
        URL of the first present image, or None if none of the indices exist
    """
    for index in order:
        if 0 <= index < len(images):
            image = images[index]
            if image is not None and image.url:
                return image.url
    return None
