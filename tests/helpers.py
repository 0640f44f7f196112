"""Reusable test utilities for InvCU image cache tests.

Image payload builders shared by the HTTP fixture server and by tests that
exercise the codec and stores directly.
"""

from __future__ import annotations

import io

from PIL import Image


def make_image(color: tuple[int, int, int] = (200, 40, 40), size: tuple[int, int] = (64, 48)) -> Image.Image:
    """Create a solid-color RGB image."""
    return Image.new("RGB", size, color)


def make_jpeg(color: tuple[int, int, int] = (200, 40, 40), size: tuple[int, int] = (64, 48)) -> bytes:
    """Encode a solid-color JPEG."""
    output = io.BytesIO()
    make_image(color, size).save(output, format="JPEG", quality=90)
    return output.getvalue()


def make_png_rgba(size: tuple[int, int] = (32, 32)) -> bytes:
    """Encode a half-transparent PNG."""
    output = io.BytesIO()
    Image.new("RGBA", size, (0, 120, 255, 128)).save(output, format="PNG")
    return output.getvalue()


def make_noise_jpeg(size: tuple[int, int] = (128, 128), quality: int = 90) -> bytes:
    """Encode a grayscale noise JPEG (large, incompressible payload)."""
    output = io.BytesIO()
    Image.effect_noise(size, 64).save(output, format="JPEG", quality=quality)
    return output.getvalue()
