"""Resize orchestration: URL -> derived key -> cache check -> fetch -> resize -> store.

The derived key doubles as the cache index; any object already stored there
is returned as-is without fetching the source.
"""

import asyncio
import logging
from concurrent.futures import Executor
from dataclasses import dataclass, replace

from PIL import Image

from resizer_py.errors import InvalidDimensions, InvalidRequest
from resizer_py.geometry import ObjectMode
from resizer_py.s3 import ObjectStore
from resizer_py.s3_url import ObjectRef, build_resized_key, parse_s3_url
from resizer_py.transform import content_type_for, resize_image

logger = logging.getLogger(__name__)


def _dimension(name: str, value) -> int:
    if isinstance(value, bool):
        raise InvalidDimensions(f"{name} must be a positive integer, got {value!r}")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str) and value.strip().isdecimal():
        try:
            value = int(value)
        except ValueError:
            raise InvalidDimensions(f"{name} must be a positive integer, got {value!r}") from None
    if not isinstance(value, int):
        raise InvalidDimensions(f"{name} must be a positive integer, got {value!r}")
    if value <= 0:
        raise InvalidDimensions("Width and height must be greater than 0")
    return value


@dataclass(frozen=True)
class ResizeRequest:
    s3_url: str
    width: int
    height: int
    mode: ObjectMode = ObjectMode.COVER

    def __post_init__(self):
        object.__setattr__(self, "width", _dimension("width", self.width))
        object.__setattr__(self, "height", _dimension("height", self.height))
        max_pixels = Image.MAX_IMAGE_PIXELS
        if max_pixels and self.width * self.height > max_pixels:
            raise InvalidDimensions(
                f"Target size {self.width}x{self.height} exceeds the {max_pixels} pixel limit"
            )
        object.__setattr__(self, "mode", ObjectMode.parse(self.mode))

    @classmethod
    def from_payload(cls, payload) -> "ResizeRequest":
        """Build a request from the decoded JSON body."""
        if not isinstance(payload, dict):
            raise InvalidRequest("Request body must be a JSON object")
        missing = [field for field in ("s3_url", "width", "height") if payload.get(field) is None]
        if missing:
            raise InvalidRequest(f"Missing required field(s): {', '.join(missing)}")
        if not isinstance(payload["s3_url"], str):
            raise InvalidRequest("s3_url must be a string")
        return cls(
            s3_url=payload["s3_url"],
            width=payload["width"],
            height=payload["height"],
            mode=payload.get("object_mode"),
        )


@dataclass(frozen=True)
class ResizeResult:
    original_url: str
    original_ref: ObjectRef
    resized_ref: ObjectRef
    width: int
    height: int
    mode: ObjectMode
    cached: bool = False

    @property
    def resized_url(self) -> str:
        return self.resized_ref.url

    def to_response(self) -> dict:
        return {
            "original_url": self.original_url,
            "resized_url": self.resized_url,
            "width": self.width,
            "height": self.height,
            "object_mode": self.mode.value,
        }


class ImageResizer:
    """Runs one resize request against an ObjectStore.

    CPU work (decode/resize/encode) runs on executor; None means the loop's
    default executor.
    """

    def __init__(self, store: ObjectStore, executor: Executor | None = None):
        self.store = store
        self.executor = executor

    async def resize(self, request: ResizeRequest) -> ResizeResult:
        logger.info(
            f"Resize request: url={request.s3_url}, width={request.width}, "
            f"height={request.height}, mode={request.mode.value}"
        )
        source = parse_s3_url(request.s3_url)
        target = source.with_key(build_resized_key(source.key, request.width, request.height))

        result = ResizeResult(
            original_url=request.s3_url,
            original_ref=source,
            resized_ref=target,
            width=request.width,
            height=request.height,
            mode=request.mode,
        )

        if await self.store.exists(target):
            logger.info(f"Resized image already exists at {target.url}, returning cached URL")
            return replace(result, cached=True)

        image_bytes = await self.store.fetch(source)
        logger.info(f"Downloaded {len(image_bytes)} bytes from {source.url}")

        loop = asyncio.get_running_loop()
        resized_bytes, new_w, new_h, fmt = await loop.run_in_executor(
            self.executor, resize_image, image_bytes, request.width, request.height, request.mode
        )
        logger.info(f"Resized to {new_w}x{new_h} {fmt} ({len(resized_bytes)} bytes)")

        await self.store.store(target, resized_bytes, content_type_for(fmt))
        logger.info(f"Successfully resized and uploaded image to {target.url}")
        return result
