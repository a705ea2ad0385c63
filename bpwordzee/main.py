from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import socketio
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import Config, config as default_config
from .errors import BpWordzeeError, PrecacheError, error_payload
from .managers.offline import Registration
from .managers.search import HOST_SESSION, SearchManager
from .routers.api import router as api_router
from .schemas import CacheMessage

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Config] = None, network: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """Build the REST app; ``network`` replaces the real HTTP transport."""
    settings = settings or default_config
    registration = Registration(network=network)
    searches = SearchManager(settings, registration)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # open the host session first so the new version claims it
        searches.get_or_create(HOST_SESSION)
        try:
            await registration.register(registration.worker(settings))
        except PrecacheError as exc:
            logger.error("Cache version %s not installed, requests go to the network: %s",
                         settings.cache_version, exc)
        yield
        await searches.aclose()
        await registration.aclose()

    app = FastAPI(title=settings.get('app.title'), version=settings.get('app.version'), lifespan=lifespan)
    app.state.settings = settings
    app.state.registration = registration
    app.state.searches = searches

    # CORS for REST
    app.add_middleware(
        CORSMiddleware,
        allow_origins=['*'],
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    @app.exception_handler(BpWordzeeError)
    async def search_error(request: Request, exc: BpWordzeeError):
        return JSONResponse(error_payload(exc), status_code=exc.status_code)

    app.include_router(api_router)
    return app


default_config.configure_logging()

# Socket.IO server (ASGI)
sio = socketio.AsyncServer(async_mode='asgi', cors_allowed_origins='*')
app = create_app()

# Mount Socket.IO ASGI application
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app)


# Socket.IO Events
@sio.event
async def connect(sid, environ, auth):
    app.state.searches.get_or_create(sid)
    await sio.emit('cache:status', app.state.registration.status().model_dump(), to=sid)

@sio.event
async def disconnect(sid):
    await app.state.searches.close_session(sid)

@sio.on('search')
async def on_search(sid, payload):
    payload = payload if isinstance(payload, dict) else {}
    try:
        result = await app.state.searches.search(
            payload.get('letras'), payload.get('puntos_extra'), payload.get('ronda'), session_id=sid)
    except BpWordzeeError as exc:
        await sio.emit('search:error', error_payload(exc), to=sid)
        return
    await sio.emit('search:result', result.to_payload(), to=sid)

@sio.on('cache:message')
async def on_cache_message(sid, message):
    try:
        parsed = CacheMessage.model_validate(message)
    except ValidationError:
        # empty or shapeless messages are ignored
        parsed = None
    status = await app.state.registration.post_message(parsed)
    await sio.emit('cache:status', status.model_dump(), to=sid)

# Export ASGI app for uvicorn
application = asgi_app

# For local running: uvicorn bpwordzee.main:application --host 0.0.0.0 --port 8000
