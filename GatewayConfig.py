import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "y", "on")


class GatewayConfig:
    # Upstream that /proxy forwards to
    UPSTREAM_BASE_URL: str = os.getenv("UPSTREAM_BASE_URL", "http://localhost:9000")
    UPSTREAM_TIMEOUT: float = float(os.getenv("UPSTREAM_TIMEOUT", "10"))

    # Server
    HOST: str = os.getenv("GATEWAY_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("GATEWAY_PORT", "8000"))
    RELOAD: bool = _env_bool("GATEWAY_RELOAD", "false")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info").strip().lower()

    # Notifications
    NOTIFY_MAX_VISIBLE: int = int(os.getenv("NOTIFY_MAX_VISIBLE", "3"))
    NOTIFY_DEFAULT_DURATION_MS: int = int(os.getenv("NOTIFY_DEFAULT_DURATION_MS", "4000"))
