from .api_client import AtlasAPIClient, FetchResult, FetchStatus
from .config import ConfigError, ExporterConfig, exporter_config

__all__ = [
    "AtlasAPIClient",
    "FetchResult",
    "FetchStatus",
    "ConfigError",
    "ExporterConfig",
    "exporter_config",
]
