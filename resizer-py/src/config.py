"""Service configuration, read once from env vars at startup.

- HOST, PORT for the HTTP listener
- AWS_REGION (or AWS_DEFAULT_REGION), S3_ENDPOINT_URL for the object store
- AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, optional; boto3's default chain otherwise
- RESIZE_WORKERS for the image worker pool
- LOG_LEVEL
"""

import os
from dataclasses import dataclass


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class Config:
    host: str = "0.0.0.0"
    port: int = 3000
    aws_region: str = "us-east-1"
    s3_endpoint_url: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    resize_workers: int = 4
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            host=os.environ.get("HOST", cls.host),
            port=_int_env("PORT", cls.port),
            aws_region=os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION") or cls.aws_region,
            s3_endpoint_url=os.environ.get("S3_ENDPOINT_URL") or None,
            aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID") or None,
            aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY") or None,
            resize_workers=_int_env("RESIZE_WORKERS", cls.resize_workers),
            log_level=os.environ.get("LOG_LEVEL", cls.log_level).upper(),
        )
