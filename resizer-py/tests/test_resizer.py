import io
from concurrent.futures import ThreadPoolExecutor

import pytest
from PIL import Image

from conftest import make_test_image
from resizer_py.errors import DecodeError, InvalidDimensions, InvalidRequest, InvalidUrl, NotFound, StoreError
from resizer_py.geometry import ObjectMode
from resizer_py.resizer import ImageResizer, ResizeRequest
from resizer_py.s3_url import ObjectRef

SOURCE = ObjectRef("bucket", "a/b/photo.jpg")
TARGET = ObjectRef("bucket", "a/b/photo_800x600.jpg")


class TestResizeRequest:
    def test_defaults_to_cover(self):
        assert ResizeRequest("s3://b/k.jpg", 10, 10).mode is ObjectMode.COVER

    @pytest.mark.parametrize("width,height", [(0, 600), (800, 0), (-5, 600), (800, -1)])
    def test_rejects_non_positive(self, width, height):
        with pytest.raises(InvalidDimensions):
            ResizeRequest("s3://b/k.jpg", width, height)

    @pytest.mark.parametrize("value", [True, 1.5, "abc", "\u00b2", [1]])
    def test_rejects_non_integers(self, value):
        with pytest.raises(InvalidDimensions):
            ResizeRequest("s3://b/k.jpg", value, 10)

    @pytest.mark.parametrize("width,height", [(2**31, 1), (60000, 60000)])
    def test_rejects_oversized_target(self, width, height):
        with pytest.raises(InvalidDimensions, match="pixel limit"):
            ResizeRequest("s3://b/k.jpg", width, height)

    def test_accepts_integral_values(self):
        request = ResizeRequest("s3://b/k.jpg", "800", 600.0)
        assert (request.width, request.height) == (800, 600)

    def test_from_payload(self):
        request = ResizeRequest.from_payload({
            "s3_url": "s3://b/k.jpg", "width": 800, "height": 600, "object_mode": "contain",
        })
        assert request == ResizeRequest("s3://b/k.jpg", 800, 600, ObjectMode.CONTAIN)

    @pytest.mark.parametrize("payload", [
        [],
        {"width": 1, "height": 1},
        {"s3_url": "s3://b/k", "height": 1},
        {"s3_url": 5, "width": 1, "height": 1},
        {"s3_url": "s3://b/k", "width": 1, "height": 1, "object_mode": "stretch"},
    ])
    def test_from_payload_rejects_malformed(self, payload):
        with pytest.raises(InvalidRequest):
            ResizeRequest.from_payload(payload)


class TestImageResizer:
    @pytest.mark.asyncio
    async def test_cache_miss_resizes_and_stores(self, store):
        store.put(SOURCE, make_test_image(4000, 2000, "JPEG"), "image/jpeg")

        result = await ImageResizer(store).resize(ResizeRequest("s3://bucket/a/b/photo.jpg", 800, 600))

        assert result.resized_ref == TARGET
        assert result.resized_url == "s3://bucket/a/b/photo_800x600.jpg"
        assert result.cached is False
        assert [name for name, _ in store.calls] == ["exists", "fetch", "store"]
        body, content_type = store.objects[TARGET]
        assert content_type == "image/jpeg"
        img = Image.open(io.BytesIO(body))
        assert img.format == "JPEG"
        assert img.size == (800, 600)

    @pytest.mark.asyncio
    async def test_cache_hit_skips_work(self, store):
        store.put(SOURCE, make_test_image(4000, 2000, "JPEG"))
        resizer = ImageResizer(store)
        request = ResizeRequest("s3://bucket/a/b/photo.jpg", 800, 600)

        first = await resizer.resize(request)
        store.calls.clear()
        second = await resizer.resize(request)

        assert second.cached is True
        assert second.resized_url == first.resized_url
        assert store.calls == [("exists", TARGET)]

    @pytest.mark.asyncio
    async def test_existing_object_is_authoritative(self, store):
        store.put(TARGET, b"not even an image")

        result = await ImageResizer(store).resize(ResizeRequest("s3://bucket/a/b/photo.jpg", 800, 600))

        assert result.cached is True
        assert store.objects[TARGET][0] == b"not even an image"

    @pytest.mark.asyncio
    async def test_modes_share_the_derived_key(self, store):
        store.put(SOURCE, make_test_image(4000, 2000, "JPEG"))
        resizer = ImageResizer(store)
        await resizer.resize(ResizeRequest("s3://bucket/a/b/photo.jpg", 800, 600, ObjectMode.COVER))

        result = await resizer.resize(ResizeRequest("s3://bucket/a/b/photo.jpg", 800, 600, ObjectMode.CONTAIN))

        assert result.resized_ref == TARGET
        assert result.cached is True
        assert result.mode is ObjectMode.CONTAIN

    @pytest.mark.asyncio
    async def test_contain_result(self, store):
        source = ObjectRef("bucket", "wide.png")
        store.put(source, make_test_image(4000, 2000))

        result = await ImageResizer(store).resize(
            ResizeRequest("https://bucket.s3.us-east-1.amazonaws.com/wide.png", 800, 600, ObjectMode.CONTAIN)
        )

        assert result.resized_ref == ObjectRef("bucket", "wide_800x600.png")
        body, content_type = store.objects[result.resized_ref]
        assert content_type == "image/png"
        assert Image.open(io.BytesIO(body)).size == (800, 400)

    @pytest.mark.asyncio
    async def test_scale_down_keeps_small_source(self, store):
        source_bytes = make_test_image(100, 100)
        store.put(ObjectRef("bucket", "small.png"), source_bytes)

        result = await ImageResizer(store).resize(
            ResizeRequest("s3://bucket/small.png", 800, 600, ObjectMode.SCALE_DOWN)
        )

        assert store.objects[result.resized_ref][0] == source_bytes

    @pytest.mark.asyncio
    async def test_runs_on_given_executor(self, store):
        store.put(SOURCE, make_test_image(400, 300, "JPEG"))
        with ThreadPoolExecutor(max_workers=1) as executor:
            result = await ImageResizer(store, executor).resize(
                ResizeRequest("s3://bucket/a/b/photo.jpg", 40, 30)
            )
        assert result.resized_ref in store.objects

    @pytest.mark.asyncio
    async def test_invalid_url_before_any_io(self, store):
        with pytest.raises(InvalidUrl):
            await ImageResizer(store).resize(ResizeRequest("https://example.com/photo.jpg", 10, 10))
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_missing_source(self, store):
        with pytest.raises(NotFound):
            await ImageResizer(store).resize(ResizeRequest("s3://bucket/a/b/photo.jpg", 800, 600))
        assert TARGET not in store.objects

    @pytest.mark.asyncio
    async def test_undecodable_source_stores_nothing(self, store):
        store.put(SOURCE, b"garbage")
        with pytest.raises(DecodeError):
            await ImageResizer(store).resize(ResizeRequest("s3://bucket/a/b/photo.jpg", 800, 600))
        assert [name for name, _ in store.calls] == ["exists", "fetch"]

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, store):
        store.put(SOURCE, make_test_image(40, 20, "JPEG"))

        async def failing_store(ref, body, content_type):
            raise StoreError("Failed to upload")

        store.store = failing_store
        with pytest.raises(StoreError):
            await ImageResizer(store).resize(ResizeRequest("s3://bucket/a/b/photo.jpg", 8, 6))
