"""aiohttp application factory for the SpeakWrite API."""

import logging
from typing import Optional

from aiohttp import web

from ..config import SpeakWriteConfig
from ..errors import SpeakWriteError
from ..services.auth_service import AuthService
from ..services.transcription_service import TranscriptionService
from ..storage.record_store import RecordStore
from ..transcription.base import AbstractTranscriptionBackend
from ..transcription.groq_backend import GroqTranscriptionBackend
from . import routes
from .keys import STORE_KEY, AUTH_KEY, TRANSCRIPTION_KEY, BACKEND_KEY

logger = logging.getLogger(__name__)

# Groq accepts uploads up to 25 MB
MAX_UPLOAD_BYTES = 25 * 1024 * 1024

PUBLIC_PATHS = {"/health", "/api/auth/signup", "/api/auth/login"}


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Render SpeakWriteError as ``{"error": message}`` with its status."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except SpeakWriteError as e:
        if e.status >= 500:
            logger.error(f"{request.method} {request.path} failed: {e.message}")
        return web.json_response({"error": e.message}, status=e.status)
    except Exception:
        logger.exception(f"Unhandled error in {request.method} {request.path}")
        return web.json_response({"error": "Internal server error"}, status=500)


@web.middleware
async def auth_middleware(request: web.Request, handler):
    """Require a valid bearer token for every non-public route."""
    if request.path not in PUBLIC_PATHS:
        auth: AuthService = request.app[AUTH_KEY]
        request["user_id"] = auth.authenticate(request.headers.get("Authorization"))
    return await handler(request)


def create_app(config: SpeakWriteConfig,
               store: Optional[RecordStore] = None,
               backend: Optional[AbstractTranscriptionBackend] = None) -> web.Application:
    """Build the web application.

    Args:
        config: Application configuration
        store: Record store (defaults to one under the configured data directory)
        backend: Transcription backend (defaults to Groq)

    Returns:
        Configured aiohttp Application
    """
    store = store or RecordStore(config.get_data_directory())
    backend = backend or GroqTranscriptionBackend(
        api_key=config.get('groq.api_key'),
        model=config.get('groq.model'),
        api_url=config.get('groq.api_url'),
        timeout_seconds=config.get('groq.timeout_seconds', 60),
    )
    expiry_seconds = int(config.get('auth.token_expiry_days', 7)) * 24 * 60 * 60

    app = web.Application(
        middlewares=[error_middleware, auth_middleware],
        client_max_size=MAX_UPLOAD_BYTES,
    )
    app[STORE_KEY] = store
    app[BACKEND_KEY] = backend
    app[AUTH_KEY] = AuthService(store, config.get('auth.jwt_secret'), expiry_seconds)
    app[TRANSCRIPTION_KEY] = TranscriptionService(backend, store)

    routes.setup_routes(app)
    app.on_cleanup.append(_close_backend)

    logger.info("SpeakWrite application created")
    return app


async def _close_backend(app: web.Application) -> None:
    await app[BACKEND_KEY].close()


def run_server(config: SpeakWriteConfig) -> None:
    """Serve the API until interrupted."""
    host = config.get('server.host', '127.0.0.1')
    port = int(config.get('server.port', 8080))
    logger.info(f"Starting server on {host}:{port}")
    web.run_app(create_app(config), host=host, port=port)
