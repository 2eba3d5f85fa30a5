"""Configuration for the image metadata ingest function.

Settings come from the Function App's application settings (or a local
``.env`` file during development) and are validated once, up front, so a
misconfigured deployment fails with a clear message instead of a stray
HTTP 401/404 from a downstream service.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Application setting names
STORAGE_CONNECTION_SETTING = "IMAGE_STORAGE_CONNECTION"
SUBSCRIPTION_KEY_SETTING = "VISION_SUBSCRIPTION_KEY"
VISION_ENDPOINT_SETTING = "VISION_ENDPOINT"
SPARQL_ENDPOINT_SETTING = "SPARQL_ENDPOINT"
HTTP_TIMEOUT_SETTING = "HTTP_TIMEOUT_SECONDS"

REQUIRED_SETTINGS = (
    STORAGE_CONNECTION_SETTING,
    SUBSCRIPTION_KEY_SETTING,
    VISION_ENDPOINT_SETTING,
    SPARQL_ENDPOINT_SETTING,
)


class ConfigurationError(ValueError):
    """Raised when required configuration is missing or invalid."""

    pass


@dataclass(frozen=True)
class PipelineConfig:
    """Settings the pipeline needs for one worker lifetime.

    Attributes:
        storage_connection_string: Connection string of the storage account
            the blob input binding reads from
        subscription_key: Vision API key sent as Ocp-Apim-Subscription-Key
        vision_endpoint: Vision API base URL, e.g. https://<name>.cognitiveservices.azure.com/vision/v2.0
        sparql_endpoint: Metadata store base URL
        http_timeout: Per-request timeout in seconds; None keeps the
            HTTP client's default
    """

    storage_connection_string: str
    subscription_key: str
    vision_endpoint: str
    sparql_endpoint: str
    http_timeout: float | None = None

    def __post_init__(self) -> None:
        fields = {
            STORAGE_CONNECTION_SETTING: self.storage_connection_string,
            SUBSCRIPTION_KEY_SETTING: self.subscription_key,
            VISION_ENDPOINT_SETTING: self.vision_endpoint,
            SPARQL_ENDPOINT_SETTING: self.sparql_endpoint,
        }
        missing = [name for name, value in fields.items() if not (value or "").strip()]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}"
            )
        if self.http_timeout is not None and self.http_timeout <= 0:
            raise ConfigurationError(
                f"{HTTP_TIMEOUT_SETTING} must be positive, got {self.http_timeout}"
            )

        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "vision_endpoint", self.vision_endpoint.strip().rstrip("/"))
        object.__setattr__(self, "sparql_endpoint", self.sparql_endpoint.strip().rstrip("/"))

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "PipelineConfig":
        """Build configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Validated PipelineConfig

        Raises:
            ConfigurationError: If any required setting is missing or blank,
                or the timeout is not a positive number
        """
        env = os.environ if environ is None else environ

        missing = [key for key in REQUIRED_SETTINGS if not env.get(key, "").strip()]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}"
            )

        raw_timeout = env.get(HTTP_TIMEOUT_SETTING, "").strip()
        timeout: float | None = None
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError as e:
                raise ConfigurationError(
                    f"{HTTP_TIMEOUT_SETTING} must be a number, got {raw_timeout!r}"
                ) from e

        return cls(
            storage_connection_string=env[STORAGE_CONNECTION_SETTING].strip(),
            subscription_key=env[SUBSCRIPTION_KEY_SETTING].strip(),
            vision_endpoint=env[VISION_ENDPOINT_SETTING],
            sparql_endpoint=env[SPARQL_ENDPOINT_SETTING],
            http_timeout=timeout,
        )
