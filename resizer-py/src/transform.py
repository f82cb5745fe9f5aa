"""Pillow decode -> resize -> encode.

The output keeps the source format (a JPEG stays a JPEG). Resampling is
always LANCZOS.
"""

import io
import logging
import warnings

from PIL import Image, ImageOps, UnidentifiedImageError

from resizer_py.errors import DecodeError, EncodeError
from resizer_py.geometry import GeometryPlan, ObjectMode, plan_geometry

logger = logging.getLogger(__name__)

RESAMPLE = Image.Resampling.LANCZOS

FORMAT_TO_CONTENT_TYPE = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
    "BMP": "image/bmp",
    "TIFF": "image/tiff",
}

# Formats that cannot store an alpha channel
_NO_ALPHA_FORMATS = {"JPEG", "BMP"}


def content_type_for(fmt: str) -> str:
    return FORMAT_TO_CONTENT_TYPE.get(fmt.upper(), "application/octet-stream")


def decode_image(image_bytes: bytes) -> Image.Image:
    """Decode bytes into a fully loaded Pillow image. Raises DecodeError."""
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("error", Image.DecompressionBombWarning)
            img = Image.open(io.BytesIO(image_bytes))
            img.load()
            # in_place keeps img.format
            ImageOps.exif_transpose(img, in_place=True)
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        Image.DecompressionBombWarning,
        OSError,
        ValueError,
    ) as e:
        raise DecodeError(f"Failed to decode image: {e}") from e

    if not img.format:
        raise DecodeError("Failed to decode image: unknown format")
    w, h = img.size
    if w <= 0 or h <= 0:
        raise DecodeError(f"Failed to decode image: zero-area image {w}x{h}")
    return img


def apply_plan(img: Image.Image, plan: GeometryPlan) -> Image.Image:
    """Crop (cover only) and resample img to plan.output_size."""
    if img.mode in ("P", "PA", "1"):
        # Pillow falls back to NEAREST for palette images
        has_alpha = img.mode == "PA" or (img.mode == "P" and "transparency" in img.info)
        img = img.convert("RGBA" if has_alpha else "RGB")
    elif img.mode.startswith("I;16"):
        # Keeps 16-bit depth; "I" is the mode Pillow resamples and saves as 16-bit PNG
        img = img.convert("I")

    try:
        return img.resize(plan.output_size, RESAMPLE, box=plan.source_box(img.size))
    except (ValueError, OverflowError, MemoryError) as e:
        w, h = plan.output_size
        raise EncodeError(f"Failed to resize image to {w}x{h}: {e}") from e


def encode_image(img: Image.Image, fmt: str) -> bytes:
    """Encode img in fmt. Raises EncodeError."""
    if fmt in _NO_ALPHA_FORMATS and img.mode not in ("RGB", "L", "CMYK"):
        img = img.convert("RGB")
    buf = io.BytesIO()
    try:
        img.save(buf, format=fmt)
    except (OSError, ValueError, KeyError) as e:
        raise EncodeError(f"Failed to encode image as {fmt}: {e}") from e
    return buf.getvalue()


def resize_image(
    image_bytes: bytes,
    width: int,
    height: int,
    mode: ObjectMode = ObjectMode.COVER,
) -> tuple[bytes, int, int, str]:
    """Resize image bytes to width x height under mode.

    Returns (resized_bytes, width, height, format). When the plan leaves the
    image as it is (scale-down of a smaller source), the input bytes are
    returned unchanged.
    """
    img = decode_image(image_bytes)
    fmt = img.format
    plan = plan_geometry(img.size, (width, height), mode)

    if plan.crop is None and plan.output_size == img.size:
        logger.info(f"Image already {img.size[0]}x{img.size[1]}, keeping source bytes")
        return image_bytes, img.size[0], img.size[1], fmt

    resized = apply_plan(img, plan)
    new_w, new_h = resized.size
    return encode_image(resized, fmt), new_w, new_h, fmt
