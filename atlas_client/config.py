import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

ENV_PREFIX = "ATLAS_BILLING_EXPORTER_"
DEFAULT_PORT = 8080
DEFAULT_TIMEOUT = 60.0
DEFAULT_BASE_URL = "https://cloud.mongodb.com/api/atlas/v1.0"


class ConfigError(Exception):
    pass


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


def parse_port(value) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        port = 0
    if not 0 < port < 65536:
        logger.warning(f"Specified port {value!r} isn't in a valid range, setting to {DEFAULT_PORT}")
        return DEFAULT_PORT
    return port


def parse_timeout(value) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        timeout = 0
    if timeout <= 0:
        logger.warning(f"Supplied timeout {value!r} not in range, defaulting to {DEFAULT_TIMEOUT:g}")
        return DEFAULT_TIMEOUT
    return timeout


@dataclass
class ExporterConfig:
    port: int = parse_port(_env("LISTEN_PORT", str(DEFAULT_PORT)))
    timeout: float = parse_timeout(_env("TIMEOUT", str(DEFAULT_TIMEOUT)))

    public_key: Optional[str] = _env("PUBLIC_KEY")
    private_key: Optional[str] = _env("PRIVATE_KEY")
    org_id: Optional[str] = _env("ORG_ID")
    base_url: str = _env("URL", DEFAULT_BASE_URL)

    log_level: str = _env("LOG_LEVEL", "INFO").upper()

    def validate(self) -> "ExporterConfig":
        missing = [
            name for name in ("public_key", "private_key", "org_id")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigError(f"Missing required settings: {', '.join(missing)}")
        self.port = parse_port(self.port)
        self.timeout = parse_timeout(self.timeout)
        self.base_url = self.base_url.rstrip("/")
        return self


exporter_config = ExporterConfig()
