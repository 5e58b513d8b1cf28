#!/usr/bin/env python3
"""
WhatsApp Gateway - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Exposes the HTTP API

All business logic is in the modules, following black box principles.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import AsyncGenerator, Optional

import redis.asyncio as redis
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from wagateway import __version__
from wagateway.config.provider import ConfigProvider, EnvConfigProvider
from wagateway.logging_config import HEALTH_CHECK_PATHS, configure_logging

# Import modules through their black box interfaces
from wagateway.modules.api import (
    ConnectionStatus,
    DisconnectResponse,
    ErrorResponse,
    QRCodeErrorResponse,
    QRCodeResponse,
    SendMessageErrorResponse,
    SendMessageRequest,
    SendMessageResponse,
    ServiceStatusResponse,
    StatusResponse,
)
from wagateway.modules.auth import AuthenticationService, AuthFactory
from wagateway.modules.config import get_config
from wagateway.modules.middleware import create_request_logging_middleware
from wagateway.modules.provider import RedisSessionProvider
from wagateway.modules.session import (
    AlreadyConnected,
    DisconnectFailed,
    NotConnected,
    PairingTimeout,
    ProviderStartError,
    SendFailed,
    SessionLifecycleManager,
)

# Get configuration
config = get_config()

# Configure logging with health check suppression
configure_logging(config.get("log_level"))
logger = logging.getLogger(__name__)

# Configuration provider (centralized config access)
config_provider: ConfigProvider = EnvConfigProvider()

# Module instances (initialized at startup)
auth_service: Optional[AuthenticationService] = None
session_manager: Optional[SessionLifecycleManager] = None
session_provider: Optional[RedisSessionProvider] = None
redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """Create Redis client from configuration."""
    # Build basic Redis URL without password (password passed separately)
    redis_url = f"redis://{config.get('redis_host')}:{config.get('redis_port')}/{config.get('redis_db')}"

    return redis.from_url(
        redis_url,
        password=config.get("redis_password"),  # Passed separately to avoid URL encoding issues
        encoding="utf-8",
        decode_responses=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle - initialize and cleanup resources.
    """
    global auth_service, session_manager, session_provider, redis_client

    # Startup
    logger.info(f"Starting WhatsApp gateway ({config.get('environment')})...")

    # Build authentication service via factory (fails fast without API_TOKEN)
    auth_service = AuthFactory.build(config_provider)

    redis_client = get_redis_client()

    session_provider = RedisSessionProvider(
        redis_client,
        prefix=config.get("provider_prefix"),
        command_timeout=config.get("provider_command_timeout"),
    )
    session_manager = SessionLifecycleManager(
        session_provider,
        pairing_timeout=config.get("pairing_timeout"),
        pairing_ttl=config.get("pairing_ttl"),
    )

    # Events missed while the event channel was down are recovered by re-syncing
    session_provider.on_reconnect = session_manager.sync
    session_provider.start_listening()
    await session_manager.sync()

    logger.info(f"WhatsApp gateway started on port {config.get('port')}")

    yield

    # Shutdown
    logger.info("Shutting down WhatsApp gateway...")

    if session_manager:
        await session_manager.close()
    if session_provider:
        await session_provider.close()
    if redis_client:
        await redis_client.aclose()
    logger.info("WhatsApp gateway shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="WhatsApp Gateway API",
    description="Pair a WhatsApp Web session by QR code and send messages over HTTP",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config_provider.get_api_config().cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(create_request_logging_middleware(skip_paths=HEALTH_CHECK_PATHS))


# Dependency injection helpers
async def verify_bearer_token(
    authorization: Optional[str] = Header(None, description="Bearer token for authentication")
) -> str:
    """Verify the shared bearer token and return the caller identity."""
    if not auth_service:
        raise HTTPException(503, "Service not initialized")

    result = await auth_service.authenticate(authorization)
    if not result.ok:
        raise HTTPException(status_code=result.status_code, detail=result.error)

    return result.identity


def get_session_manager() -> SessionLifecycleManager:
    """Return the session manager or fail with 503 before startup completes."""
    if not session_manager:
        raise HTTPException(503, "Service not initialized")
    return session_manager


def _connection_status() -> ConnectionStatus:
    if session_manager and session_manager.get_status().connected:
        return ConnectionStatus.CONNECTED
    return ConnectionStatus.DISCONNECTED


# Service Endpoints


@app.get("/")
@app.get("/status")
async def service_status():
    """
    Check that the API is online.

    Returns:
        200: Service is running, with the WhatsApp connection summary
    """
    return ServiceStatusResponse(
        timestamp=datetime.now(UTC),
        whatsapp=_connection_status(),
        environment=config.get("environment"),
    ).dump()


@app.get("/healthz")
async def healthz():
    """
    Minimal health check endpoint for readiness and liveness checks.

    This endpoint is unauthenticated and returns a simple OK response.

    Returns:
        200: Service is running
    """
    return {"status": "ok"}


# WhatsApp Session Endpoints


@app.get("/whatsapp/qrcode")
async def get_qrcode(
    identity: str = Depends(verify_bearer_token),
    manager: SessionLifecycleManager = Depends(get_session_manager),
):
    """
    Get a QR code to pair the WhatsApp session.

    Starts the session when needed and waits for the next QR code.

    Returns:
        200: QR code and its expiry
        400: WhatsApp is already connected
        401/403: Missing or invalid token
        500: Timed out waiting for the QR code or the session failed to start
    """
    try:
        artifact = await manager.request_pairing_code()
    except AlreadyConnected as e:
        return JSONResponse(
            status_code=400,
            content=QRCodeErrorResponse(
                error=str(e), last_update=manager.get_status().last_update
            ).dump(),
        )
    except (PairingTimeout, ProviderStartError) as e:
        logger.error(f"Failed to get QR code: {e}")
        return JSONResponse(
            status_code=500,
            content=QRCodeErrorResponse(
                error=str(e), last_update=manager.get_status().last_update
            ).dump(),
        )

    return QRCodeResponse(
        qrcode=artifact.code,
        expires_at=artifact.expires_at,
        last_update=manager.get_status().last_update,
    ).dump()


@app.get("/whatsapp/status")
async def get_whatsapp_status():
    """
    Get the WhatsApp connection status.

    Read-only: never starts the session.

    Returns:
        200: Connection status and time of the last transition
    """
    last_update = session_manager.get_status().last_update if session_manager else datetime.now(UTC)
    return StatusResponse(status=_connection_status(), last_update=last_update).dump()


@app.post("/whatsapp/disconnect")
async def disconnect_whatsapp(
    identity: str = Depends(verify_bearer_token),
    manager: SessionLifecycleManager = Depends(get_session_manager),
):
    """
    Log the WhatsApp session out.

    Returns:
        200: Session disconnected
        400: WhatsApp is not connected
        401/403: Missing or invalid token
        500: Teardown failed (the session is still marked disconnected)
    """
    try:
        await manager.disconnect()
    except NotConnected as e:
        return JSONResponse(status_code=400, content=ErrorResponse(error=str(e)).dump())
    except DisconnectFailed as e:
        return JSONResponse(
            status_code=500, content=ErrorResponse(error=e.message, details=e.detail).dump()
        )

    logger.info(f"WhatsApp session disconnected by {identity}")
    return DisconnectResponse(message="WhatsApp disconnected successfully").dump()


@app.get("/whatsapp/events")
async def whatsapp_events(
    identity: str = Depends(verify_bearer_token),
    manager: SessionLifecycleManager = Depends(get_session_manager),
):
    """
    SSE endpoint streaming session status changes.

    Sends the current status on connect, then one "status" event per
    transition and a "keepalive" event after each quiet period.

    Returns:
        SSE stream of status snapshots
        401/403: Missing or invalid token
    """
    keepalive = config.get("sse_keepalive")
    logger.info(f"Event stream opened by {identity}")

    async def event_generator() -> AsyncGenerator:
        """Generate SSE events from session status changes."""
        # Registered inside the generator: a stream that never starts holds no watcher
        queue = manager.watch()
        try:
            yield {"event": "status", "data": json.dumps(manager.get_status().to_dict())}

            while True:
                try:
                    status = await asyncio.wait_for(queue.get(), timeout=keepalive)
                except asyncio.TimeoutError:
                    yield {
                        "event": "keepalive",
                        "data": json.dumps({"timestamp": datetime.now(UTC).isoformat()}),
                    }
                    continue

                yield {"event": "status", "data": json.dumps(status.to_dict())}

        except asyncio.CancelledError:
            logger.info("Event stream client disconnected")
            raise
        finally:
            manager.unwatch(queue)

    return EventSourceResponse(event_generator())


# Messaging Endpoints


@app.post("/send-message")
async def send_message(
    request: SendMessageRequest,
    identity: str = Depends(verify_bearer_token),
    manager: SessionLifecycleManager = Depends(get_session_manager),
):
    """
    Send a text message through the connected WhatsApp session.

    Returns:
        200: Message sent
        400: number or message missing
        401/403: Missing or invalid token
        503: WhatsApp is not connected
        500: WhatsApp failed to send the message
    """
    if not request.is_complete:
        return JSONResponse(
            status_code=400,
            content=SendMessageErrorResponse(error="Number and message are required").dump(),
        )

    try:
        await manager.send_message(request.number, request.message)
    except NotConnected as e:
        return JSONResponse(
            status_code=503, content=SendMessageErrorResponse(error=str(e)).dump()
        )
    except SendFailed as e:
        return JSONResponse(
            status_code=500,
            content=SendMessageErrorResponse(error=e.message, details=e.detail).dump(),
        )

    return SendMessageResponse(message="Message sent successfully").dump()


# Error handlers


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors with the API's error shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Handle malformed request bodies."""
    logger.warning(f"Invalid request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={
            "status": "error",
            "error": "Invalid request body",
            "details": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(ValueError)
async def validation_error_handler(request: Request, exc: ValueError):
    """Handle validation errors."""
    logger.error(f"Validation error: {exc}")
    return JSONResponse(status_code=400, content=ErrorResponse(error=str(exc)).dump())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Handle anything the routes did not."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="Internal server error", details=str(exc)).dump(),
    )
