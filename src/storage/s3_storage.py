"""
S3-Compatible Storage Manager

Supports AWS S3, MinIO, Wasabi, Backblaze B2, and other S3-compatible services.
"""

import logging
from datetime import datetime
from typing import Optional, Dict, Any
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from src.common.errors import NotFoundError, StorageError
from .storage_interface import (
    StorageInterface,
    StorageBackend,
    StorageMetadata
)


NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}
TRANSIENT_CODES = {
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "RequestTimeout",
    "RequestTimeTooSkewed",
    "ServiceUnavailable",
    "InternalError",
}
TRANSIENT_EXCEPTIONS = (
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)


class S3StorageManager(StorageInterface):
    """
    S3-compatible storage manager.

    Locators are publicly resolvable URLs: ``{public_base_url}/{key}`` with
    the key percent-encoded.

    Configuration:
        AWS S3:
            endpoint_url=None (uses AWS defaults)
        MinIO:
            endpoint_url="http://localhost:9000"
        Wasabi:
            endpoint_url="https://s3.wasabisys.com"
        Backblaze B2:
            endpoint_url="https://s3.us-west-000.backblazeb2.com"
    """

    backend_type = StorageBackend.S3

    def __init__(
        self,
        bucket_name: str,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        public_base_url: Optional[str] = None,
        connect_timeout: float = 5.0,
        read_timeout: float = 60.0,
        create_bucket: bool = False,
        client=None
    ):
        """
        Initialize S3 storage manager.

        Args:
            bucket_name: S3 bucket name
            region: AWS region (e.g., us-east-1)
            endpoint_url: Custom S3 endpoint (None = AWS S3)
            aws_access_key_id: AWS access key
            aws_secret_access_key: AWS secret key
            public_base_url: URL prefix for locators (derived when None)
            connect_timeout: Seconds to wait for a connection
            read_timeout: Seconds to wait for a response
            create_bucket: Create the bucket when it does not exist
            client: Pre-built boto3 S3 client (used as-is)
        """
        self.bucket_name = bucket_name
        self.region = region
        self.endpoint_url = endpoint_url
        self.logger = logging.getLogger(__name__)

        if client is None:
            config = Config(
                region_name=region,
                signature_version='s3v4',
                connect_timeout=connect_timeout,
                read_timeout=read_timeout,
                retries={'max_attempts': 3, 'mode': 'standard'}
            )
            client = boto3.client(
                's3',
                endpoint_url=endpoint_url,
                aws_access_key_id=aws_access_key_id,
                aws_secret_access_key=aws_secret_access_key,
                config=config
            )
        self.s3_client = client

        if public_base_url:
            self._public_base_url = public_base_url.rstrip("/")
        elif endpoint_url:
            self._public_base_url = f"{endpoint_url.rstrip('/')}/{bucket_name}"
        else:
            self._public_base_url = f"https://{bucket_name}.s3.{region}.amazonaws.com"

        if create_bucket:
            self._ensure_bucket_exists()

    @property
    def public_base_url(self) -> Optional[str]:
        return self._public_base_url

    def _ensure_bucket_exists(self):
        """Create bucket if it doesn't exist."""
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            self.logger.info(f"Bucket exists: {self.bucket_name}")
        except ClientError as e:
            error_code = e.response['Error']['Code']
            if error_code not in NOT_FOUND_CODES:
                raise self._translate_error(e, self.bucket_name, "check bucket") from e
            try:
                if self.region == 'us-east-1':
                    self.s3_client.create_bucket(Bucket=self.bucket_name)
                else:
                    self.s3_client.create_bucket(
                        Bucket=self.bucket_name,
                        CreateBucketConfiguration={'LocationConstraint': self.region}
                    )
                self.logger.info(f"Created bucket: {self.bucket_name}")
            except (ClientError, BotoCoreError) as create_error:
                self.logger.error(f"Failed to create bucket: {create_error}")
                raise self._translate_error(create_error, self.bucket_name, "create bucket") from create_error
        except BotoCoreError as e:
            raise self._translate_error(e, self.bucket_name, "check bucket") from e

    def _translate_error(self, error: Exception, key: str, action: str) -> Exception:
        """Map botocore failures onto the service error taxonomy."""
        if isinstance(error, ClientError):
            code = str(error.response.get('Error', {}).get('Code', ''))
            status = error.response.get('ResponseMetadata', {}).get('HTTPStatusCode') or 0
            if code in NOT_FOUND_CODES:
                return NotFoundError(key)
            retryable = code in TRANSIENT_CODES or status >= 500
            return StorageError(f"Failed to {action} {key}: {code or error}", retryable=retryable)
        retryable = isinstance(error, TRANSIENT_EXCEPTIONS)
        return StorageError(f"Failed to {action} {key}: {error}", retryable=retryable)

    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None
    ) -> StorageMetadata:
        """Store an object in S3."""
        put_params = {
            'Bucket': self.bucket_name,
            'Key': key,
            'Body': data,
            'ContentType': content_type,
        }

        if metadata:
            put_params['Metadata'] = metadata

        try:
            response = self.s3_client.put_object(**put_params)
        except (ClientError, BotoCoreError) as e:
            self.logger.error(f"Failed to put object {key}: {e}")
            raise self._translate_error(e, key, "write") from e

        return StorageMetadata(
            key=key,
            locator=self.get_url(key),
            size=len(data),
            content_type=content_type,
            etag=response.get('ETag', '').strip('"'),
            last_modified=datetime.now(),
            metadata=metadata,
        )

    def get_object(self, key: str) -> bytes:
        """Retrieve an object from S3."""
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=key)
            return response['Body'].read()
        except (ClientError, BotoCoreError) as e:
            translated = self._translate_error(e, key, "read")
            if not isinstance(translated, NotFoundError):
                self.logger.error(f"Failed to get object {key}: {e}")
            raise translated from e

    def get_metadata(self, key: str) -> StorageMetadata:
        """Get object metadata from S3."""
        try:
            response = self.s3_client.head_object(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, key, "stat") from e

        return StorageMetadata(
            key=key,
            locator=self.get_url(key),
            size=response['ContentLength'],
            content_type=response.get('ContentType', 'application/octet-stream'),
            etag=response.get('ETag', '').strip('"'),
            last_modified=response['LastModified'],
            metadata=response.get('Metadata'),
        )

    def exists(self, key: str) -> bool:
        """Check if object exists in S3."""
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            if e.response['Error']['Code'] in NOT_FOUND_CODES:
                return False
            raise self._translate_error(e, key, "stat") from e
        except BotoCoreError as e:
            raise self._translate_error(e, key, "stat") from e

    def get_url(self, key: str) -> str:
        """Public URL for an object key."""
        return f"{self._public_base_url}/{quote(key)}"

    def get_storage_info(self) -> Dict[str, Any]:
        """Get S3 storage information."""
        return {
            'backend': StorageBackend.S3.value,
            'bucket': self.bucket_name,
            'region': self.region,
            'endpoint': self.endpoint_url or 'AWS S3',
            'public_base_url': self._public_base_url,
        }
