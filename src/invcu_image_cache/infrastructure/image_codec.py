"""Image decoding and encoding for the image cache.

Downloaded bytes are decoded into Pillow images for the memory store, and
decoded images are re-encoded as JPEG for the disk store.

Key Features:
    - Decoding with forced load to catch truncated streams
    - JPEG encoding with configurable quality
    - RGBA/LA/P to RGB conversion for JPEG compatibility
    - Decoded cost estimate (width x height x bands) for memory budgeting

Dependencies:
    - Pillow (PIL): Required for image decoding and encoding
"""

from __future__ import annotations

import io
import logging

try:
    from PIL import Image, UnidentifiedImageError
except ImportError as exc:
    msg = "Pillow is required for image decoding. Install with: pip install Pillow"
    raise ImportError(msg) from exc

from invcu_image_cache.domain.exceptions import DecodeFailure

logger = logging.getLogger(__name__)


def image_cost(image: Image.Image) -> int:
    """Estimate the in-memory size of a decoded image in bytes."""
    width, height = image.size
    return max(width * height * len(image.getbands()), 1)


class ImageCodec:
    """Decodes remote image bytes and encodes images for the disk cache.

    Attributes:
        jpeg_quality: JPEG quality (1-100) used when encoding disk copies.
            Default: 90.
    """

    __slots__ = ("jpeg_quality",)

    def __init__(self, jpeg_quality: int = 90) -> None:
        self.jpeg_quality = jpeg_quality

    def decode(self, data: bytes) -> Image.Image:
        """Decode image bytes into a fully loaded Pillow image.

        Args:
            data: Raw encoded image bytes (JPEG, PNG, WebP, ...).

        Returns:
            Decoded image. Pixel data is loaded, so the image does not keep
            a reference to the source buffer.

        Raises:
            DecodeFailure: If data is empty, truncated or not an image.
        """
        if not data:
            raise DecodeFailure("Cannot decode empty image data")

        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except UnidentifiedImageError as exc:
            raise DecodeFailure(f"Unrecognized image data: {exc}") from exc
        except Exception as exc:
            # Format plugins raise assorted types on malformed input
            # (NotImplementedError, EOFError, struct.error, ...).
            raise DecodeFailure(f"Invalid image data: {exc.__class__.__name__}: {exc}") from exc

        return img

    def encode_jpeg(self, image: Image.Image) -> bytes:
        """Encode an image as JPEG for the disk cache.

        JPEG has no alpha channel: RGBA images are composited onto a white
        background, other non-RGB modes are converted to RGB.
        """
        match image.mode:
            case "RGBA" | "LA":
                rgba = image.convert("RGBA")
                background = Image.new("RGB", rgba.size, (255, 255, 255))
                background.paste(rgba, mask=rgba.split()[3])
                image = background
            case "RGB" | "L":
                pass
            case _:
                image = image.convert("RGB")

        output = io.BytesIO()
        image.save(output, format="JPEG", quality=self.jpeg_quality, optimize=True)
        return output.getvalue()
