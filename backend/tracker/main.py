"""
Live Location Tracker
Main FastAPI Application Entry Point

This is the main entry point for the backend server.
It wires the participant registry, event router and Socket.IO gateway
into one ASGI application.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import socketio
from dotenv import load_dotenv

from tracker import __version__
from tracker.api import presence_router
from tracker.config import ConfigManager, get_config
from tracker.logging_config import setup_logging
from tracker.registry import ParticipantRegistry
from tracker.router import EventRouter
from tracker.websocket import WebSocketEmitter, WebSocketHandlers

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

VERSION = __version__


def _origins(value):
    if isinstance(value, str):
        return [o.strip() for o in value.split(",") if o.strip()] or ["*"]
    return list(value or ["*"])


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events - startup and shutdown"""
    cfg = app.state.config
    server_cfg = cfg.get_server_config()

    logger.info("=" * 60)
    logger.info("[STARTUP] Live Location Tracker %s", VERSION)
    logger.info("[WS] Socket.IO ready at /%s", server_cfg.get("socketPath", "socket.io"))
    logger.info("=" * 60)

    yield

    # Shutdown
    logger.info("[SHUTDOWN] Closing delivery queues...")
    await app.state.emitter.shutdown()
    logger.info("[SHUTDOWN] Complete")


def create_app(cfg: ConfigManager = None) -> FastAPI:
    """
    Build the FastAPI app and its Socket.IO gateway

    Every piece of shared state hangs off app.state; nothing is global.
    """
    cfg = cfg or get_config()
    setup_logging(cfg.get_log_level())

    server_cfg = cfg.get_server_config()
    origins = _origins(server_cfg.get("corsOrigins", "*"))

    # Create Socket.IO server
    sio = socketio.AsyncServer(
        async_mode='asgi',
        cors_allowed_origins='*' if origins == ["*"] else origins,
        logger=False,  # Reduce noise in production
        engineio_logger=False,
        ping_interval=server_cfg.get("pingInterval", 25),
        ping_timeout=server_cfg.get("pingTimeout", 60),
    )

    registry = ParticipantRegistry(cfg.get_registry_config())
    emitter = WebSocketEmitter(sio, queue_size=cfg.get_delivery_config().get("queueSize", 0))
    router = EventRouter(registry, emitter)
    handlers = WebSocketHandlers(sio, router)

    app = FastAPI(
        title="Live Location Tracker API",
        description="Real-time presence and location broadcast hub",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.state.config = cfg
    app.state.sio = sio
    app.state.registry = registry
    app.state.emitter = emitter
    app.state.router = router
    app.state.handlers = handlers

    # CORS Configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Presence routes: /api/participants, /api/names/{name}/available
    app.include_router(presence_router)

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint - API information"""
        return {
            "name": "Live Location Tracker",
            "version": VERSION,
            "status": "operational",
            "documentation": "/docs",
            "socketPath": "/" + server_cfg.get("socketPath", "socket.io"),
            "endpoints": {
                "participants": "/api/participants",
                "nameAvailable": "/api/names/{name}/available",
                "health": "/health",
                "stats": "/ws/stats",
            }
        }

    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "timestamp": time.time(),
            "websocket": {
                "connected_clients": handlers.get_client_count(),
                "status": "ready"
            }
        }

    @app.get("/ws/stats", tags=["websocket"])
    async def websocket_stats():
        """Get WebSocket statistics"""
        return {
            "emitter": emitter.get_stats(),
            "router": router.get_stats(),
            "registry": registry.get_stats(),
            "clients": {
                "count": handlers.get_client_count(),
                "connected": list(handlers.get_connected_clients().keys())
            },
            "timestamp": time.time()
        }

    return app


app = create_app()

# ============================================
# Create Socket.IO ASGI app
# ============================================

sio_app = socketio.ASGIApp(
    app.state.sio,
    app,
    socketio_path=app.state.config.get_server_config().get("socketPath", "socket.io"),
)


# ============================================
# WebSocket Event Reference (handled by WebSocketHandlers)
# ============================================
#
# Client -> Server Events:
#   - set-name               : Claim a display name {name, attrs}
#   - send-location          : Position update {latitude, longitude}
#   - send-notification      : Short message {text}
#
# Server -> Client Events:
#   - name-accepted          : Claim accepted (claimer only)
#   - name-rejected          : Claim rejected {reason} (claimer only)
#   - user-connected         : Participant named {name, attrs}
#   - receive-location       : Participant moved {id, name, attrs, latitude, longitude}
#   - receive-notification   : Participant message {id, name, attrs, text}
#   - user-left              : Named participant left {name, attrs}
#   - user-disconnected      : Connection closed {id}
#   - event-rejected         : Location/notification rejected {event, reason}


# ============================================
# Entry Point
# ============================================

if __name__ == "__main__":
    import uvicorn

    server_cfg = app.state.config.get_server_config()
    uvicorn.run(
        "tracker.main:sio_app",
        host=server_cfg.get("host", "0.0.0.0"),
        port=int(server_cfg.get("port", 3000)),
        log_level=app.state.config.get_log_level().lower(),
    )
