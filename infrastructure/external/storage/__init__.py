"""Storage service entry point and lifecycle management."""
from typing import Optional
from functools import lru_cache

from core.config import settings
from core.logging_config import get_logger
from .base import MultipartStorageProvider
from .config import StorageConfig, StorageType
from .factory import create_provider, register_provider
from .models import MultipartUpload
from .exceptions import (
    StorageError,
    NotFoundError,
    PermissionDeniedError,
    TransientError,
    ConfigurationError,
)

logger = get_logger(__name__)

# Global storage client instance, shared read-only by all requests
_storage_client: Optional[MultipartStorageProvider] = None
_storage_init_error: Optional[str] = None


@lru_cache
def get_storage_config() -> StorageConfig:
    """Get storage configuration from settings.

    Assembles StorageConfig from core.config.settings to maintain
    single source of truth for configuration.
    """
    s = settings.storage
    return StorageConfig(
        type=s.type or StorageType.LOCAL,
        bucket=s.bucket,
        region=s.region,
        endpoint=s.endpoint,
        public_base_url=s.public_base_url,
        aws_access_key_id=s.aws_access_key_id,
        aws_secret_access_key=s.aws_secret_access_key,
        local_base_path=s.local_base_path,
        timeout=s.timeout,
        enable_ssl=s.enable_ssl,
    )


async def init_storage_client(config: Optional[StorageConfig] = None) -> None:
    """Initialize storage client once at startup."""
    global _storage_client, _storage_init_error

    if _storage_client is not None:
        logger.warning("Storage client already initialized")
        return

    config = config or get_storage_config()
    try:
        _storage_client = await create_provider(config)
        _storage_init_error = None
    except Exception as e:
        _storage_init_error = str(e)
        logger.error("Failed to initialize storage client", provider=config.type, error=str(e))
        raise

    logger.info(
        "Storage client initialized",
        provider=config.type,
        bucket=config.bucket
    )


def get_storage_client() -> Optional[MultipartStorageProvider]:
    """Get storage client instance, or None if not initialized."""
    return _storage_client


def get_storage_init_error() -> Optional[str]:
    return _storage_init_error


async def shutdown_storage_client() -> None:
    """Shutdown storage client."""
    global _storage_client

    if _storage_client is None:
        return

    try:
        await _storage_client.close()
        logger.info("Storage client shutdown")
    except Exception as e:
        logger.error("Error during storage shutdown", error=str(e))
    finally:
        _storage_client = None


__all__ = [
    # Lifecycle
    "init_storage_client",
    "get_storage_client",
    "get_storage_init_error",
    "shutdown_storage_client",

    # Configuration
    "get_storage_config",
    "StorageConfig",
    "StorageType",
    "create_provider",
    "register_provider",

    # Base types
    "MultipartStorageProvider",
    "MultipartUpload",

    # Exceptions
    "StorageError",
    "NotFoundError",
    "PermissionDeniedError",
    "TransientError",
    "ConfigurationError",
]
