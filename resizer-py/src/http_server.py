"""Shared aiohttp server plumbing.

Provides run_server(), the entry point for the service: serves the app,
exposes /health on the same listener, maps ResizeError to JSON error
responses, and shuts down cleanly on SIGTERM/SIGINT.
"""

import asyncio
import logging
import signal

from aiohttp import web

from resizer_py.config import Config
from resizer_py.errors import ResizeError

logger = logging.getLogger(__name__)


async def _health_handler(request):
    return web.Response(text="OK")


@web.middleware
async def error_middleware(request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ResizeError as e:
        logger.warning(f"{request.method} {request.path} failed ({e.status}): {e.message}")
        if e.__cause__ is not None:
            logger.debug("Underlying error", exc_info=e.__cause__)
        return web.json_response({"error": e.message}, status=e.status)
    except Exception:
        logger.exception(f"Unhandled error in {request.method} {request.path}")
        return web.json_response({"error": "Internal server error"}, status=500)


def create_app(routes) -> web.Application:
    """Build an app with the error middleware, /health and the given routes."""
    app = web.Application(middlewares=[error_middleware])
    app.router.add_get("/health", _health_handler)
    app.router.add_routes(routes)
    return app


def configure_logging(level: str = "INFO"):
    logging.basicConfig(level=level)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


async def _run(app: web.Application, service_name: str, host: str, port: int):
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info(f"{service_name} listening on {host}:{port}")

    shutdown = asyncio.Event()

    def _signal_handler():
        logger.info("Received shutdown signal")
        shutdown.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _signal_handler)

    await shutdown.wait()

    logger.info("Shutting down...")
    await runner.cleanup()
    logger.info("Shutdown complete")


def run_server(app: web.Application, service_name: str, config: Config):
    """Main entry point. Blocks until SIGTERM/SIGINT."""
    configure_logging(config.log_level)
    asyncio.run(_run(app, service_name, config.host, config.port))
