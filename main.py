import inspect
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import partial
from typing import Callable, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from openai import AsyncOpenAI

from routes.realtime_ws import router as realtime_router
from services.openai.assistant_service import AssistantService
from services.openai.dictation_service import DictationService
from services.openai.speech_service import SpeechService
from services.realtime.dispatcher import RelayServices
from services.realtime.session_store import SessionStore
from services.realtime.transcription_stream import RealtimeTranscriber
from utils.logging_config import setup_logging
from utils.settings import RelaySettings

load_dotenv()  # Load environment variables from .env file if present

SERVICE_NAME = "Vision Voice Relay"

LOGGER = logging.getLogger(__name__)


def _openai_client(clients: Dict[str, AsyncOpenAI], api_key: str) -> AsyncOpenAI:
    """Return one AsyncOpenAI client per distinct API key."""
    if api_key not in clients:
        try:
            clients[api_key] = AsyncOpenAI(api_key=api_key)
        except Exception as exc:
            raise RuntimeError("Failed to initialize OpenAI Async client") from exc
    return clients[api_key]


def build_relay_services(settings: RelaySettings, clients: Dict[str, AsyncOpenAI]) -> RelayServices:
    """Wire the assistant, speech and dictation services from settings."""
    return RelayServices(
        assistant=AssistantService(_openai_client(clients, settings.openai_api_key), model=settings.assistant_model),
        speech=SpeechService(
            _openai_client(clients, settings.text_to_speech_key),
            model=settings.tts_model,
            voice=settings.tts_voice,
            audio_format=settings.tts_format,
            debug_save_audio=settings.debug_save_audio,
            debug_audio_dir=settings.debug_audio_dir,
        ),
        dictation=DictationService(
            _openai_client(clients, settings.speech_to_text_key), model=settings.transcribe_model
        ),
    )


async def _close_client(client: AsyncOpenAI) -> None:
    """Close a client if it exposes a close/aclose method; errors are logged."""
    aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
    if aclose is None:
        return
    try:
        if inspect.iscoroutinefunction(aclose):
            await aclose()
        else:
            result = aclose()
            if inspect.isawaitable(result):
                await result
    except Exception as exc:
        LOGGER.warning("Error closing OpenAI client: %s", exc)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the relay settings (from the environment unless injected)
      - the OpenAI async clients and the services built on them
      - the streaming transcriber factory
      - the in-memory session store
    and attach them to `app.state`.
    """
    settings: RelaySettings = app.state.settings or RelaySettings.from_env()
    app.state.settings = settings
    if app.state.configure_logging:
        setup_logging(settings.log_level)

    clients: Dict[str, AsyncOpenAI] = {}
    if app.state.relay_services is None:
        app.state.relay_services = build_relay_services(settings, clients)
    if app.state.transcriber_factory is None:
        app.state.transcriber_factory = partial(
            RealtimeTranscriber,
            settings.speech_to_text_key,
            url=settings.realtime_url,
            model=settings.transcribe_model,
        )
    app.state.session_store = SessionStore()
    LOGGER.info("%s ready for connections", SERVICE_NAME)

    try:
        yield
    finally:
        for client in clients.values():
            await _close_client(client)


def _cors_origins(settings: Optional[RelaySettings]) -> list:
    if settings is not None:
        return list(settings.cors_origins)
    origins = os.getenv("CORS_ORIGINS", "*")
    return [origin.strip() for origin in origins.split(",") if origin.strip()] or ["*"]


def create_app(
    settings: Optional[RelaySettings] = None,
    *,
    relay_services: Optional[RelayServices] = None,
    transcriber_factory: Optional[Callable] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Collaborators left as None are built from the environment at startup.
    """
    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.relay_services = relay_services
    app.state.transcriber_factory = transcriber_factory
    app.state.configure_logging = configure_logging
    app.state.session_store = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(settings),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        LOGGER.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/")
    async def status():
        """
        Liveness payload for the relay.
        """
        return {
            "status": "online",
            "service": SERVICE_NAME,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/health")
    async def health(request: Request):
        """
        Health check reporting the number of connected devices.
        """
        store: Optional[SessionStore] = request.app.state.session_store
        return {"status": "healthy", "connections": store.count() if store is not None else 0}

    # Register application routers
    app.include_router(realtime_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    relay_settings = RelaySettings.from_env()
    uvicorn.run(create_app(relay_settings), host=relay_settings.host, port=relay_settings.port)
