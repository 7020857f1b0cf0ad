"""
Store configuration.

Settings are read once into an immutable StoreConfig that is handed to the
components that need it. Environment variables (optionally from a .env
file loaded by the entry point):

    JOBSTORE_HOST               document store host (required)
    JOBSTORE_PORT               document store port (default 9200)
    JOBSTORE_INDEX              index holding scheduler data (required)
    JOBSTORE_TYPE_PREFIX        prefix for the job/trigger types (default quartz_)
    JOBSTORE_TIMEOUT            HTTP timeout in seconds (default 2.0)
    JOBSTORE_SEARCH_SIZE        max hits per acquisition search (default 100)
    JOBSTORE_ORDER_BY_PRIORITY  sort candidates before claiming (default false)
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import JobStoreConfigError


DEFAULT_PORT = 9200
DEFAULT_TYPE_PREFIX = "quartz_"
DEFAULT_TIMEOUT_SECONDS = 2.0
DEFAULT_SEARCH_SIZE = 100


@dataclass(frozen=True)
class StoreConfig:
    """Connection and behaviour settings for the job store."""

    host: str
    index_name: str
    port: int = DEFAULT_PORT
    type_prefix: str = DEFAULT_TYPE_PREFIX
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    search_size: int = DEFAULT_SEARCH_SIZE
    order_by_priority: bool = False

    def __post_init__(self):
        if not self.host:
            raise JobStoreConfigError("The property 'host' cannot be empty")
        if not self.index_name:
            raise JobStoreConfigError("The property 'index_name' cannot be empty")
        if self.port <= 0:
            raise JobStoreConfigError("The property 'port' must be positive")
        if self.timeout_seconds <= 0:
            raise JobStoreConfigError("The property 'timeout_seconds' must be positive")
        if self.search_size <= 0:
            raise JobStoreConfigError("The property 'search_size' must be positive")

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}/{self.index_name}"

    def collection_url(self, collection: str) -> str:
        return f"{self.base_url}/{self.type_prefix}{collection}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StoreConfig":
        """
        Build a StoreConfig from environment variables.

        Raises:
            JobStoreConfigError: If a required variable is missing or a
                value cannot be parsed
        """
        env = os.environ if environ is None else environ

        for required in ("JOBSTORE_HOST", "JOBSTORE_INDEX"):
            if not env.get(required):
                raise JobStoreConfigError(f"The property '{required}' must be set")

        try:
            return cls(
                host=env["JOBSTORE_HOST"],
                index_name=env["JOBSTORE_INDEX"],
                port=int(env.get("JOBSTORE_PORT", DEFAULT_PORT)),
                type_prefix=env.get("JOBSTORE_TYPE_PREFIX", DEFAULT_TYPE_PREFIX),
                timeout_seconds=float(env.get("JOBSTORE_TIMEOUT", DEFAULT_TIMEOUT_SECONDS)),
                search_size=int(env.get("JOBSTORE_SEARCH_SIZE", DEFAULT_SEARCH_SIZE)),
                order_by_priority=env.get("JOBSTORE_ORDER_BY_PRIORITY", "false").lower() == "true",
            )
        except ValueError as e:
            raise JobStoreConfigError(f"Invalid job store configuration: {e}") from e
