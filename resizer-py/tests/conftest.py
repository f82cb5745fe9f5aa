import io

import pytest
from PIL import Image

from resizer_py.errors import NotFound
from resizer_py.s3_url import ObjectRef


def make_test_image(width, height, fmt="PNG", mode="RGB"):
    """Create a test image and return its bytes."""
    img = Image.new(mode, (width, height), color="blue" if mode == "RGB" else 0)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


class MemoryStore:
    """In-memory ObjectStore that records every call."""

    def __init__(self, objects=None):
        self.objects: dict[ObjectRef, tuple[bytes, str]] = dict(objects or {})
        self.calls: list[tuple[str, ObjectRef]] = []

    async def exists(self, ref):
        self.calls.append(("exists", ref))
        return ref in self.objects

    async def fetch(self, ref):
        self.calls.append(("fetch", ref))
        if ref not in self.objects:
            raise NotFound(f"Source image not found: {ref.url}")
        return self.objects[ref][0]

    async def store(self, ref, body, content_type):
        self.calls.append(("store", ref))
        self.objects[ref] = (body, content_type)

    def put(self, ref, body, content_type="application/octet-stream"):
        self.objects[ref] = (body, content_type)


@pytest.fixture
def store():
    return MemoryStore()
