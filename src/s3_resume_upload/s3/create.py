import logging
from dataclasses import dataclass

import boto3
from botocore.client import BaseClient
from botocore.config import Config

from s3_resume_upload.s3.types import S3Credentials, S3Provider

logger = logging.getLogger(__name__)

_DEFAULT_BACKBLAZE_ENDPOINT = "https://s3.us-west-002.backblazeb2.com"
_MAX_CONNECTIONS = 10
_TIMEOUT_READ = 120
_TIMEOUT_CONNECT = 60


@dataclass
class S3Config:
    max_pool_connections: int | None = None
    timeout_connection: int | None = None
    timeout_read: int | None = None

    def resolve_defaults(self) -> None:
        self.max_pool_connections = self.max_pool_connections or _MAX_CONNECTIONS
        self.timeout_connection = self.timeout_connection or _TIMEOUT_CONNECT
        self.timeout_read = self.timeout_read or _TIMEOUT_READ


def _resolve_endpoint(s3_creds: S3Credentials) -> str | None:
    endpoint_url = s3_creds.endpoint_url
    if s3_creds.provider == S3Provider.BACKBLAZE:
        return endpoint_url or _DEFAULT_BACKBLAZE_ENDPOINT
    if (endpoint_url is not None) and not (endpoint_url.startswith("http")):
        logger.warning(f"Endpoint URL is schema naive: {endpoint_url}, assuming HTTPS")
        endpoint_url = f"https://{endpoint_url}"
    return endpoint_url


def create_s3_client(
    s3_creds: S3Credentials,
    region_name: str | None,
    s3_config: S3Config | None = None,
) -> BaseClient:
    """Create and return an S3 client."""
    s3_config = s3_config or S3Config()
    s3_config.resolve_defaults()
    endpoint_url = _resolve_endpoint(s3_creds)
    logger.debug(
        f"Creating {s3_creds.provider.value} S3 client, region={region_name}, endpoint={endpoint_url}"
    )
    session = boto3.session.Session()  # type: ignore
    return session.client(
        service_name="s3",
        aws_access_key_id=s3_creds.access_key_id,
        aws_secret_access_key=s3_creds.secret_access_key,
        aws_session_token=s3_creds.session_token,
        endpoint_url=endpoint_url,
        config=Config(
            signature_version="s3v4",
            region_name=region_name,
            max_pool_connections=s3_config.max_pool_connections,
            read_timeout=s3_config.timeout_read,
            connect_timeout=s3_config.timeout_connection,
        ),
    )
