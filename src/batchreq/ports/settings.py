"""Settings port definition (DTO)."""

from dataclasses import dataclass

__all__ = ["BatchSettingsPort"]


@dataclass
class BatchSettingsPort:
    """Runtime settings for the batch engine.

    Decouples core from concrete configuration sources, enabling
    easy testing and implementation swapping.

    Attributes:
        stall_ms: Default debounce window for new batch groups.
        throttle_ms: Default pacing interval for new groups; None dispatches concurrently.
        throttle_floor_ms: Lowest accepted throttle interval.
    """

    stall_ms: float = 50
    throttle_ms: float | None = None
    throttle_floor_ms: float = 50
