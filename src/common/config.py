"""
Service Configuration

Environment-driven settings for storage backend selection, credentials,
naming and the HTTP listener.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

STORAGE_BACKENDS = ("local", "s3")
SELECTION_POLICIES = ("ascending", "preserve")
NAME_TOKENS = ("uuid", "timestamp")


def configure_logging(level: str = "INFO"):
    """Configure root logging once for an entry point."""
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got: {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got: {raw!r}")
    return value


def _get_choice(env: Mapping[str, str], name: str, default: str, choices) -> str:
    value = (env.get(name) or default).strip().lower()
    if value not in choices:
        raise ValueError(f"{name} must be one of {', '.join(choices)}, got: {value!r}")
    return value


@dataclass
class ServiceConfig:
    """Settings for one running service instance."""
    storage_backend: str = "local"
    storage_path: str = "data/storage"

    s3_bucket: Optional[str] = None
    s3_region: str = "us-east-1"
    s3_endpoint: Optional[str] = None
    s3_access_key: Optional[str] = None
    s3_secret_key: Optional[str] = None
    s3_public_base_url: Optional[str] = None
    s3_connect_timeout: float = 5.0
    s3_read_timeout: float = 60.0

    upload_prefix: str = "uploads"
    generated_prefix: str = "generated"
    selection_policy: str = "ascending"
    name_token: str = "uuid"

    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    def __post_init__(self):
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(f"Unknown storage backend: {self.storage_backend}")
        if self.storage_backend == "s3" and not self.s3_bucket:
            raise ValueError("S3_BUCKET is required when STORAGE_BACKEND=s3")
        if self.selection_policy not in SELECTION_POLICIES:
            raise ValueError(f"Unknown selection policy: {self.selection_policy}")
        if self.name_token not in NAME_TOKENS:
            raise ValueError(f"Unknown name token: {self.name_token}")
        self.upload_prefix = self.upload_prefix.strip("/")
        self.generated_prefix = self.generated_prefix.strip("/")
        if not self.upload_prefix or not self.generated_prefix:
            raise ValueError("Upload and generated prefixes must not be empty")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ServiceConfig":
        """
        Build configuration from environment variables.

        Args:
            env: Mapping to read from (defaults to ``os.environ``)

        Returns:
            ServiceConfig

        Raises:
            ValueError: A variable holds an invalid value
        """
        env = os.environ if env is None else env

        raw_port = env.get("PORT") or env.get("port") or "8000"
        try:
            port = int(raw_port)
        except ValueError:
            raise ValueError(f"PORT must be an integer, got: {raw_port!r}")

        origins = [o.strip() for o in env.get("CORS_ORIGINS", "*").split(",") if o.strip()]

        return cls(
            storage_backend=_get_choice(env, "STORAGE_BACKEND", "local", STORAGE_BACKENDS),
            storage_path=env.get("STORAGE_PATH", "data/storage"),
            s3_bucket=env.get("S3_BUCKET") or None,
            s3_region=env.get("S3_REGION", "us-east-1"),
            s3_endpoint=env.get("S3_ENDPOINT") or None,
            s3_access_key=env.get("S3_ACCESS_KEY") or None,
            s3_secret_key=env.get("S3_SECRET_KEY") or None,
            s3_public_base_url=env.get("S3_PUBLIC_BASE_URL") or None,
            s3_connect_timeout=_get_float(env, "S3_CONNECT_TIMEOUT", 5.0),
            s3_read_timeout=_get_float(env, "S3_READ_TIMEOUT", 60.0),
            upload_prefix=env.get("UPLOAD_PREFIX", "uploads"),
            generated_prefix=env.get("GENERATED_PREFIX", "generated"),
            selection_policy=_get_choice(env, "SELECTION_POLICY", "ascending", SELECTION_POLICIES),
            name_token=_get_choice(env, "NAME_TOKEN", "uuid", NAME_TOKENS),
            host=env.get("HOST", "0.0.0.0"),
            port=port,
            cors_origins=origins or ["*"],
            log_level=env.get("LOG_LEVEL", "INFO"),
        )

    def describe(self) -> Dict[str, str]:
        """Non-secret summary for logs and the health endpoint."""
        summary = {
            "storage_backend": self.storage_backend,
            "selection_policy": self.selection_policy,
            "name_token": self.name_token,
        }
        if self.storage_backend == "local":
            summary["storage_path"] = self.storage_path
        else:
            summary["bucket"] = self.s3_bucket or ""
            summary["region"] = self.s3_region
        return summary
