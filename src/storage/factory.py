"""Backend selection from service configuration."""

import logging

from src.common.config import ServiceConfig
from .local_storage import LocalStorageManager
from .s3_storage import S3StorageManager
from .storage_interface import StorageInterface

logger = logging.getLogger(__name__)


def create_storage(config: ServiceConfig) -> StorageInterface:
    """Instantiate the storage backend named by ``config.storage_backend``."""
    if config.storage_backend == "local":
        return LocalStorageManager(base_path=config.storage_path)

    logger.info(f"Using S3 bucket {config.s3_bucket} ({config.s3_region})")
    return S3StorageManager(
        bucket_name=config.s3_bucket,
        region=config.s3_region,
        endpoint_url=config.s3_endpoint,
        aws_access_key_id=config.s3_access_key,
        aws_secret_access_key=config.s3_secret_key,
        public_base_url=config.s3_public_base_url,
        connect_timeout=config.s3_connect_timeout,
        read_timeout=config.s3_read_timeout,
    )
