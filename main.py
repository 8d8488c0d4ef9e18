import asyncio
import inspect
import logging
import os
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import Callable, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from openai import AsyncOpenAI

from config import Settings, load_settings
from routes.conversation_route import router as conversation_router
from routes.voice_ws import router as voice_router
from services.gemini.completion_gateway import CompletionGateway
from services.voice.scheduler import LoopScheduler, Scheduler
from services.voice.session_store import SessionStore
from services.voice.session_sweeper import SessionSweeper

BASE_DIR = Path(__file__).resolve().parent
PUBLIC_DIR = BASE_DIR / "public"

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _close_client(client) -> None:
    """Close the OpenAI client if it exposes a close/aclose method."""
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
    except Exception:
        # Shutdown errors should not mask more important issues.
        LOGGER.warning("Error while closing the completion client", exc_info=True)


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[CompletionGateway] = None,
    scheduler_factory: Callable[[], Scheduler] = LoopScheduler,
) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    ``settings`` and ``gateway`` are read from the environment and built from
    an AsyncOpenAI client at startup when not supplied.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan manager to initialize:
          - settings and logging
          - the completion gateway (AsyncOpenAI against the provider endpoint)
          - the session store and its periodic sweeper
        and attach them to `app.state`.
        """
        app_settings = settings or load_settings()
        configure_logging(app_settings.log_level)
        app.state.settings = app_settings
        app.state.scheduler_factory = scheduler_factory

        client = None
        completion_gateway = gateway
        if completion_gateway is None:
            try:
                client = AsyncOpenAI(
                    api_key=app_settings.api_key,
                    base_url=app_settings.base_url,
                    timeout=app_settings.conversation.request_timeout,
                    max_retries=0,
                )
            except Exception as exc:
                raise RuntimeError("Failed to initialize OpenAI Async client") from exc
            completion_gateway = CompletionGateway(
                client,
                model=app_settings.model,
                timeout=app_settings.conversation.request_timeout,
            )
        app.state.completion_gateway = completion_gateway

        store = SessionStore()
        app.state.session_store = store
        sweeper = SessionSweeper(store, app_settings.session_max_age, app_settings.sweep_interval)
        sweep_task = asyncio.create_task(sweeper.run_periodic())
        LOGGER.info("Voice chat service ready (model %s)", app_settings.model)

        try:
            yield
        finally:
            sweep_task.cancel()
            with suppress(asyncio.CancelledError):
                await sweep_task
            store.clear()
            if client is not None:
                await _close_client(client)

    app = FastAPI(title="Rev Voice Assistant", lifespan=lifespan)

    client_url = settings.client_url if settings else os.getenv("CLIENT_URL", "http://localhost:3000")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[client_url],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Serve static assets from the public directory, if it exists.
    if PUBLIC_DIR.exists():
        app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")

    @app.get("/", include_in_schema=False)
    async def serve_index():
        """
        Serve the voice chat page from the public directory.
        """
        index_path = PUBLIC_DIR / "index.html"
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="Frontend not found")
        return FileResponse(index_path)

    # Register application routers
    app.include_router(conversation_router)
    app.include_router(voice_router)

    return app


app = create_app()


def run(settings: Optional[Settings] = None) -> None:
    """Serve the app with uvicorn on the configured port."""
    import uvicorn

    app_settings = settings or load_settings()
    uvicorn.run("main:app", host="0.0.0.0", port=app_settings.port)


if __name__ == "__main__":
    run()
