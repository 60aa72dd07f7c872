"""Core types for the taggable cache library."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import NamedTuple, Optional

from taggable.duration import parse_duration

# Duration type alias
Duration = str | int  # "30s", "5m", "200ms" or milliseconds


class ScanPage(NamedTuple):
    """One page of an incremental set scan."""

    cursor: int  # 0 once the scan is complete
    members: list[str]


# A trampoline step: either None (done) or the next unit of work.
Continuation = Callable[[], Awaitable[Optional["Continuation"]]]


@dataclass(frozen=True, slots=True)
class LockConfig:
    """Retry and expiry settings for tag-version locks."""

    ttl: Duration = "5s"
    retry_count: int = 10
    retry_delay: Duration = "200ms"
    retry_jitter: Duration = "200ms"

    def __post_init__(self) -> None:
        if self.retry_count < 0:
            raise ValueError("retry_count must be >= 0")
        if self.ttl_ms <= 0:
            raise ValueError("lock ttl must be positive")
        # Durations are parsed eagerly
        parse_duration(self.retry_delay)
        parse_duration(self.retry_jitter)

    @property
    def ttl_ms(self) -> int:
        return parse_duration(self.ttl)

    @property
    def retry_delay_ms(self) -> int:
        return parse_duration(self.retry_delay)

    @property
    def retry_jitter_ms(self) -> int:
        return parse_duration(self.retry_jitter)
