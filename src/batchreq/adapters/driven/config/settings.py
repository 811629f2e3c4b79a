"""Configuration loading from environment variables."""

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

from batchreq.ports.settings import BatchSettingsPort

__all__ = ["Settings", "load_settings"]

load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Runtime configuration for batching and the HTTP transport.

    Attributes:
        stall_ms: Default debounce window for new batch groups.
        throttle_ms: Default pacing interval for new groups (None = concurrent).
        throttle_floor_ms: Lowest accepted throttle interval.
        http_timeout_sec: Default total timeout for requests without their own.
    """

    stall_ms: float = Field(default=50, ge=0, description="Debounce window in milliseconds.")
    throttle_ms: float | None = Field(
        default=None,
        description=(
            "Pacing between throttled dispatches in milliseconds. "
            "If not set, batches dispatch concurrently."
        ),
    )
    throttle_floor_ms: float = Field(
        default=50, gt=0, description="Lowest accepted throttle interval in milliseconds."
    )
    http_timeout_sec: float | None = Field(
        default=None, gt=0, description="Default total request timeout in seconds."
    )

    @field_validator("throttle_ms")
    @classmethod
    def validate_throttle_ms(cls, v: float | None) -> float | None:
        """Validate that throttle (if provided) is not negative.

        Args:
            v: Throttle interval to validate (can be None).

        Returns:
            The validated interval or None.

        Raises:
            ValueError: If the interval is negative.
        """
        if v is not None and v < 0:
            raise ValueError(f"throttle_ms must be >= 0 (got: {v})")
        return v

    @model_validator(mode="after")
    def clamp_throttle(self) -> "Settings":
        """Raise a configured throttle below the floor up to the floor."""
        if self.throttle_ms is not None and self.throttle_ms < self.throttle_floor_ms:
            logger.warning(
                f"throttle_ms={self.throttle_ms} is below the floor, "
                f"using {self.throttle_floor_ms} ms"
            )
            self.throttle_ms = self.throttle_floor_ms
        return self

    def to_port(self) -> BatchSettingsPort:
        """Expose the batching part of the settings to the core.

        Returns:
            BatchSettingsPort with the configured defaults.
        """
        return BatchSettingsPort(
            stall_ms=self.stall_ms,
            throttle_ms=self.throttle_ms,
            throttle_floor_ms=self.throttle_floor_ms,
        )


def _read_number(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be a number (got: {raw})") from e


def load_settings() -> Settings:
    """Load and validate settings from the environment.

    Optional environment variables:
    - BATCH_STALL_MS: Debounce window for batches (default 50).
    - BATCH_THROTTLE_MS: Pacing for throttled batches (default: concurrent).
    - BATCH_THROTTLE_FLOOR_MS: Lowest accepted throttle (default 50).
    - HTTP_TIMEOUT_SEC: Default request timeout (default: aiohttp's).

    Returns:
        Validated Settings object.

    Raises:
        RuntimeError: If a variable is not a number.
        ValueError: If configuration is invalid.
    """
    values = {
        "stall_ms": _read_number("BATCH_STALL_MS"),
        "throttle_ms": _read_number("BATCH_THROTTLE_MS"),
        "throttle_floor_ms": _read_number("BATCH_THROTTLE_FLOOR_MS"),
        "http_timeout_sec": _read_number("HTTP_TIMEOUT_SEC"),
    }
    settings = Settings(**{k: v for k, v in values.items() if v is not None})

    logger.info(
        f"Batching configured: stall={settings.stall_ms}ms, "
        f"throttle={settings.throttle_ms or '<concurrent>'}, "
        f"floor={settings.throttle_floor_ms}ms, "
        f"timeout={settings.http_timeout_sec or '<default>'}"
    )

    return settings
