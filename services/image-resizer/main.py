"""
image-resizer - Resizes images stored in S3 and stores the result next to them.

POST /resize with {"s3_url", "width", "height", "object_mode"?}. The source is
downloaded, resized with Pillow in the requested object mode (cover, contain,
fill, scale-down) and uploaded as {stem}_{width}x{height}.{ext} in the same
bucket and directory. If that object already exists it is returned without
doing any work.
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor

from aiohttp import web

from resizer_py.config import Config
from resizer_py.errors import InvalidRequest
from resizer_py.http_server import create_app, run_server
from resizer_py.resizer import ImageResizer, ResizeRequest
from resizer_py.s3 import S3ObjectStore, create_s3_client

logger = logging.getLogger(__name__)

RESIZER = web.AppKey("resizer", ImageResizer)

routes = web.RouteTableDef()


@routes.post("/resize")
async def handle_resize(request: web.Request) -> web.Response:
    """Handle a resize request."""
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidRequest("Request body must be valid JSON") from None

    resize_request = ResizeRequest.from_payload(payload)
    result = await request.app[RESIZER].resize(resize_request)
    return web.json_response(result.to_response())


def build_app(config: Config, store=None) -> web.Application:
    """Wire the resizer into the app. store defaults to S3 built from config."""
    if store is None:
        store = S3ObjectStore(create_s3_client(config))
        logger.info(f"Using S3 store (region={config.aws_region}, endpoint={config.s3_endpoint_url or 'default'})")
    executor = ThreadPoolExecutor(max_workers=config.resize_workers, thread_name_prefix="resize")

    app = create_app(routes)
    app[RESIZER] = ImageResizer(store, executor)

    async def _executor_ctx(app):
        yield
        executor.shutdown(wait=True)

    app.cleanup_ctx.append(_executor_ctx)
    return app


if __name__ == "__main__":
    config = Config.from_env()
    run_server(build_app(config), service_name="image-resizer", config=config)
