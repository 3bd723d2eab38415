import os
import logging
from typing import Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3001

STUN_SERVERS = [
    {"urls": "stun:stun.l.google.com:19302"},
    {"urls": "stun:stun1.l.google.com:19302"},
]

TURN_VARS = ["TURN_URL", "TURN_USERNAME", "TURN_CREDENTIAL"]


def get_relay_servers() -> List[Dict[str, str]]:
    """Public STUN servers, plus an authenticated TURN server when fully configured"""
    servers = [dict(server) for server in STUN_SERVERS]
    if all(os.getenv(var) for var in TURN_VARS):
        servers.append({
            "urls": os.getenv("TURN_URL"),
            "username": os.getenv("TURN_USERNAME"),
            "credential": os.getenv("TURN_CREDENTIAL"),
        })
    return servers


def get_allowed_origins() -> Optional[List[str]]:
    """Explicit origins from CLIENT_URL / ALLOWED_ORIGINS, or None for any origin"""
    env_origins = os.getenv("ALLOWED_ORIGINS", "").split(",")
    origins = [origin.strip() for origin in env_origins if origin.strip()]

    client_url = os.getenv("CLIENT_URL", "").strip()
    if client_url and client_url not in origins:
        origins.insert(0, client_url)

    return origins or None


def get_ssl_options() -> Dict[str, str]:
    """uvicorn TLS keyword arguments; empty when certificates are not usable"""
    key_path = os.getenv("SSL_KEY_PATH")
    cert_path = os.getenv("SSL_CERT_PATH")
    if not (key_path and cert_path):
        return {}
    if not (os.path.isfile(key_path) and os.path.isfile(cert_path)):
        logger.warning(f"SSL certificates not found at {key_path} / {cert_path}, falling back to HTTP")
        return {}
    return {"ssl_keyfile": key_path, "ssl_certfile": cert_path}


def get_host() -> str:
    return os.getenv("HOST", DEFAULT_HOST)


def get_port() -> int:
    return int(os.getenv("PORT", DEFAULT_PORT))


def validate_environment():
    """Report configuration that will be ignored; nothing here is fatal"""
    configured = [var for var in TURN_VARS if os.getenv(var)]
    if configured and len(configured) != len(TURN_VARS):
        missing = [var for var in TURN_VARS if var not in configured]
        logger.warning(f"Incomplete TURN configuration, missing: {', '.join(missing)}; using STUN only")

    if bool(os.getenv("SSL_KEY_PATH")) != bool(os.getenv("SSL_CERT_PATH")):
        logger.warning("Only one of SSL_KEY_PATH / SSL_CERT_PATH is set, falling back to HTTP")

    try:
        get_port()
    except ValueError:
        raise RuntimeError(f"PORT must be an integer, got {os.getenv('PORT')!r}")
