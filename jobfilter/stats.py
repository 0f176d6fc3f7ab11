"""Process-lifetime counters and the per-cycle error buffer."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class CycleStats:
    started_at: str = field(default_factory=_now_iso)
    total_cycles: int = 0
    total_emails_processed: int = 0
    total_jobs_evaluated: int = 0
    total_skipped: int = 0
    total_errors: int = 0
    last_cycle_at: str | None = None
    last_cycle_duration_ms: int | None = None

    def start_cycle(self) -> None:
        self.total_cycles += 1
        self.last_cycle_at = _now_iso()

    def finish_cycle(self, duration_ms: int) -> None:
        self.last_cycle_duration_ms = duration_ms

    def add_email(self, count: int = 1) -> None:
        self.total_emails_processed += count

    def add_evaluated(self, count: int = 1) -> None:
        self.total_jobs_evaluated += count

    def add_skipped(self, count: int = 1) -> None:
        self.total_skipped += count

    def add_error(self, count: int = 1) -> None:
        self.total_errors += count

    def reset(self) -> None:
        fresh = CycleStats()
        for name, value in asdict(fresh).items():
            setattr(self, name, value)

    def snapshot(self) -> dict:
        return asdict(self)

    def format_log(self) -> str:
        if self.last_cycle_duration_ms is None:
            duration = "n/a"
        else:
            duration = f"{self.last_cycle_duration_ms / 1000:.1f}s"
        return " ".join([
            f"[stats] cycle={self.total_cycles}",
            f"emails={self.total_emails_processed}",
            f"evaluated={self.total_jobs_evaluated}",
            f"skipped={self.total_skipped}",
            f"errors={self.total_errors}",
            f"duration={duration}",
        ])


@dataclass(frozen=True)
class BufferedError:
    context: str
    message: str


class ErrorBuffer:
    """Failures collected during a cycle, reported as one notification."""

    def __init__(self) -> None:
        self._items: list[BufferedError] = []

    def add(self, context: str, message: str) -> None:
        self._items.append(BufferedError(context, message))

    def drain(self) -> list[BufferedError]:
        items, self._items = self._items, []
        return items

    def clear(self) -> None:
        self._items = []

    def __len__(self) -> int:
        return len(self._items)


@dataclass
class CycleState:
    """Mutable state owned by the cycle coordinator."""

    stats: CycleStats = field(default_factory=CycleStats)
    errors: ErrorBuffer = field(default_factory=ErrorBuffer)
    running: bool = False

    def reset(self) -> None:
        self.stats.reset()
        self.errors.clear()
        self.running = False
