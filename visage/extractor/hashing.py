"""Content digests and perceptual hashing for fingerprints."""

from __future__ import annotations

import hashlib
import io

import imagehash
from PIL import Image, UnidentifiedImageError

VISUAL_HASH_SIZE = 16  # 16x16 DCT blocks -> 256-bit hash


def dom_hash(html: str) -> str:
    return hashlib.md5(html.encode("utf-8")).hexdigest()


def style_hash(css: str) -> str:
    return hashlib.sha1(css.encode("utf-8")).hexdigest()


def visual_hash(png_bytes: bytes, hash_size: int = VISUAL_HASH_SIZE) -> str:
    """Perceptual hash of a screenshot, as hex.

    Screenshots are taken with a transparent background, so alpha is
    flattened onto white before hashing.

    Raises:
        ValueError: If the bytes are not a decodable image.
    """
    try:
        image = Image.open(io.BytesIO(png_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Screenshot is not a valid image: {e}") from e

    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
        image = Image.alpha_composite(background, rgba)
    image = image.convert("RGB")

    return str(imagehash.phash(image, hash_size=hash_size))


def hash_distance(hash1: str, hash2: str) -> int:
    """Hamming distance between two visual hashes (diagnostics only)."""
    return imagehash.hex_to_hash(hash1) - imagehash.hex_to_hash(hash2)
