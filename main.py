# main.py

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import os
import logging
import uvicorn

from config.settings import (
    get_allowed_origins,
    get_host,
    get_port,
    get_relay_servers,
    get_ssl_options,
    validate_environment,
)
from room_manager import RoomManager
from routes.status import router as status_router
from signaling import ConnectionHub, router as signaling_router

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

AVAILABLE_ENDPOINTS = ["/", "/health", "/rooms", "/ws"]

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the room state for this process; it is never persisted"""
    logger.info("Starting up WebRTC Signaling Server")
    validate_environment()

    relay_servers = get_relay_servers()
    app.state.room_manager = RoomManager(relay_servers=relay_servers)
    app.state.hub = ConnectionHub()
    logger.info(f"Configured {len(relay_servers)} relay servers")

    yield

    logger.info(f"Shutting down with {len(app.state.room_manager.rooms)} active rooms")


def create_app() -> FastAPI:
    app = FastAPI(
        title="WebRTC Signaling Server",
        description="Room pairing and offer/answer/ICE relay for two-party WebRTC calls",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Explicit origins may send credentials; the open policy may not
    origins = get_allowed_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=origins is not None,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    app.include_router(status_router, tags=["Status"])
    app.include_router(signaling_router, tags=["Signaling"])

    @app.get("/")
    async def root():
        return {
            "message": "WebRTC Signaling Server",
            "version": "1.0.0",
            "endpoints": {
                "health": "/health",
                "rooms": "/rooms",
                "signaling": "/ws",
            }
        }

    @app.exception_handler(500)
    async def internal_server_error_handler(request, exc):
        logger.error(f"Internal server error: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": "An unexpected error occurred"
            }
        )

    @app.exception_handler(404)
    async def not_found_handler(request, exc):
        return JSONResponse(
            status_code=404,
            content={
                "error": "Endpoint not found",
                "message": "The requested endpoint does not exist",
                "available_endpoints": AVAILABLE_ENDPOINTS
            }
        )

    return app


app = create_app()

if __name__ == "__main__":
    validate_environment()
    host = get_host()
    port = get_port()
    ssl_options = get_ssl_options()
    scheme = "https" if ssl_options else "http"
    logger.info(f"WebRTC Signaling Server running on port {port}")
    logger.info(f"Health check available at {scheme}://localhost:{port}/health")
    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=False,
        log_level="info",
        access_log=True,
        **ssl_options,
    )
