"""
Client configuration.

Configuration comes from environment variables or a YAML file. The MinIO
variables used by the rest of the deployment (MINIO_ENDPOINT,
MINIO_ROOT_USER, MINIO_ROOT_PASSWORD) are honoured when the DOCSTORE_*
equivalents are not set.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from docstore.domain import DEFAULT_PAGE_LENGTH
from docstore.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.config/docstore/config.yaml"

# Field name -> environment variables, first one set wins
ENVIRONMENT_VARIABLES: Dict[str, tuple] = {
    "backend": ("DOCSTORE_BACKEND",),
    "s3_endpoint_url": ("DOCSTORE_S3_ENDPOINT_URL", "MINIO_ENDPOINT"),
    "s3_access_key": ("DOCSTORE_S3_ACCESS_KEY", "MINIO_ROOT_USER"),
    "s3_secret_key": ("DOCSTORE_S3_SECRET_KEY", "MINIO_ROOT_PASSWORD"),
    "s3_region": ("DOCSTORE_S3_REGION",),
    "content_bucket": ("DOCSTORE_CONTENT_BUCKET",),
    "metadata_bucket": ("DOCSTORE_METADATA_BUCKET",),
    "page_length": ("DOCSTORE_PAGE_LENGTH",),
    "log_level": ("DOCSTORE_LOG_LEVEL",),
}


class Backend(str, Enum):
    MEMORY = "memory"
    S3 = "s3"


class ClientConfig(BaseModel):
    backend: Backend = Backend.MEMORY
    s3_endpoint_url: Optional[str] = None
    s3_access_key: Optional[str] = None
    s3_secret_key: Optional[str] = None
    s3_region: Optional[str] = None
    content_bucket: str = "documents"
    metadata_bucket: str = "documents-metadata"
    page_length: int = Field(default=DEFAULT_PAGE_LENGTH, ge=1)
    log_level: str = "INFO"

    @field_validator("s3_endpoint_url")
    @classmethod
    def endpoint_has_scheme(cls, v: Optional[str]) -> Optional[str]:
        # MINIO_ENDPOINT is conventionally host:port
        if v and "://" not in v:
            return f"http://{v}"
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("content_bucket", "metadata_bucket")
    @classmethod
    def bucket_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Bucket name cannot be empty")
        return v.strip()

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ClientConfig":
        try:
            return cls.model_validate(dict(values))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid docstore configuration: {e}") from e

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> "ClientConfig":
        """Build configuration from environment variables."""
        values = _environment_values(os.environ if environ is None else environ)
        logger.debug(
            "Loaded configuration from environment",
            extra={"fields": sorted(values)},
        )
        return cls.from_mapping(values)

    @classmethod
    def from_yaml(
        cls,
        path: Union[str, Path] = DEFAULT_CONFIG_PATH,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ClientConfig":
        """Build configuration from a YAML mapping.

        Values missing from the file are taken from the environment.
        """
        config_path = Path(path).expanduser()
        try:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read configuration file {config_path}: {e}"
            ) from e
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Configuration file is not valid YAML: {config_path}: {e}"
            ) from e

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigurationError(
                f"Configuration file must contain a YAML dictionary: "
                f"{config_path}"
            )
        unknown = set(config_data) - set(cls.model_fields)
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys in {config_path}: {sorted(unknown)}"
            )

        values = _environment_values(os.environ if environ is None else environ)
        values.update(config_data)
        logger.debug(
            "Loaded configuration file",
            extra={"config_path": str(config_path), "fields": sorted(values)},
        )
        return cls.from_mapping(values)

    def configure_logging(self) -> None:
        logging.basicConfig(
            level=self.log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


def _environment_values(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for field, names in ENVIRONMENT_VARIABLES.items():
        for name in names:
            value = environ.get(name)
            if value:
                values[field] = value
                break
    return values
