"""Session broker HTTP service.

Exchanges the long-lived API key for a short-lived session descriptor so
that clients never hold the key.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import Settings
from ..errors import MissingAPIKeyError, SessionError, UpstreamSessionError
from .base import SessionBroker
from .factory import create_session_broker
from .models import SessionErrorBody

logger = logging.getLogger(__name__)

SESSION_FAILED_MESSAGE = "Failed to create a session."


def _error_response(status_code: int, error: str, details: object = None) -> JSONResponse:
    body = SessionErrorBody(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def create_app(settings: Settings | None = None, broker: SessionBroker | None = None) -> FastAPI:
    """Build the broker application.

    Args:
        settings: Runtime settings (default: read from environment)
        broker: Session broker to use (default: OpenAI broker from settings)

    Returns:
        FastAPI application exposing ``POST /api/session``
    """
    settings = settings or Settings.from_env()
    if broker is None:
        broker = create_session_broker(
            "openai",
            api_key=settings.openai_api_key,
            model=settings.realtime_model,
            instructions=settings.instructions,
            voice=settings.voice,
            modalities=settings.modalities,
            base_url=settings.openai_base_url,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.broker.close()

    app = FastAPI(title="realtalk session broker", lifespan=lifespan)
    app.state.broker = broker

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def health_check() -> dict[str, str]:
        return {"status": "ok", "model": settings.realtime_model}

    @app.post("/api/session")
    async def create_session(request: Request):
        session_broker: SessionBroker = request.app.state.broker
        try:
            session = await session_broker.create_session()
        except MissingAPIKeyError as e:
            logger.error("Failed to create realtime session: %s", e)
            return _error_response(500, e.user_message)
        except UpstreamSessionError as e:
            return _error_response(e.status_code, SESSION_FAILED_MESSAGE, e.details)
        except SessionError as e:
            logger.error("Failed to create realtime session: %s", e)
            return _error_response(500, SESSION_FAILED_MESSAGE)
        except Exception:
            logger.exception("Failed to create realtime session")
            return _error_response(500, SESSION_FAILED_MESSAGE)

        return session.public_payload()

    return app
