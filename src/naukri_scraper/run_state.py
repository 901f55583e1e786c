import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from .models import ApplicationType, JobRecord


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _make_run_id() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


@dataclass
class RunState:
    """
    Per-run bookkeeping: known URLs, per-category counts, accepted batch.

    Mutated only by the run coordinator, one record at a time. Counters and
    events double as the run summary written at the end.
    """

    internal_limit: int
    external_limit: int
    run_id: str = field(default_factory=_make_run_id)
    started_at_iso: str = field(default_factory=_utc_now_iso)
    started_at_monotonic: float = field(default_factory=time.monotonic)
    ended_at_iso: Optional[str] = None
    duration_seconds: Optional[float] = None
    page: int = 1
    known_urls: Set[str] = field(default_factory=set)
    accepted: List[JobRecord] = field(default_factory=list)
    counts: Dict[ApplicationType, int] = field(
        default_factory=lambda: {ApplicationType.INTERNAL: 0, ApplicationType.EXTERNAL: 0}
    )
    counters: Dict[str, int] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    # === Dedup & limits ===

    def seed(self, urls: Iterable[str]) -> int:
        before = len(self.known_urls)
        self.known_urls.update(u for u in urls if u)
        return len(self.known_urls) - before

    def is_known(self, url: str) -> bool:
        return url in self.known_urls

    def limit_for(self, kind: ApplicationType) -> int:
        if kind == ApplicationType.INTERNAL:
            return self.internal_limit
        if kind == ApplicationType.EXTERNAL:
            return self.external_limit
        return 0

    @property
    def internal_count(self) -> int:
        return self.counts[ApplicationType.INTERNAL]

    @property
    def external_count(self) -> int:
        return self.counts[ApplicationType.EXTERNAL]

    def has_room(self, kind: ApplicationType) -> bool:
        return self.counts.get(kind, 0) < self.limit_for(kind)

    def limits_reached(self) -> bool:
        return (
            self.internal_count >= self.internal_limit
            and self.external_count >= self.external_limit
        )

    def accept(self, record: JobRecord) -> bool:
        """Add record to the batch if new and its category has room"""
        kind = record.application_type
        if self.is_known(record.url):
            self.inc("duplicates")
            return False
        if kind not in self.counts or not self.has_room(kind):
            self.inc("limit_skips")
            return False
        self.accepted.append(record)
        self.known_urls.add(record.url)
        self.counts[kind] += 1
        return True

    # === Metrics ===

    def inc(self, key: str, amount: int = 1) -> None:
        if not key:
            return
        self.counters[key] = int(self.counters.get(key, 0)) + int(amount)

    def record_event(self, kind: str, **data: Any) -> None:
        if not kind:
            return
        payload: Dict[str, Any] = {"t": _utc_now_iso(), "kind": kind}
        payload.update({k: v for k, v in data.items() if v is not None})
        self.events.append(payload)

    def finish(self) -> None:
        """Mark the run as finished and record end time."""
        if self.ended_at_iso is None:
            self.ended_at_iso = _utc_now_iso()
            self.duration_seconds = max(time.monotonic() - self.started_at_monotonic, 0.0)

    def to_dict(self, *, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        ended_at = self.ended_at_iso or _utc_now_iso()
        duration = self.duration_seconds
        if duration is None:
            duration = max(time.monotonic() - self.started_at_monotonic, 0.0)
        payload: Dict[str, Any] = {
            "run_id": self.run_id,
            "started_at": self.started_at_iso,
            "ended_at": ended_at,
            "duration_seconds": round(duration, 6),
            "last_page": self.page,
            "internal": self.internal_count,
            "external": self.external_count,
            "new_jobs": len(self.accepted),
            "tracked_urls": len(self.known_urls),
            "counters": dict(self.counters),
        }
        if self.events:
            payload["events"] = list(self.events)
        if extra:
            payload["extra"] = dict(extra)
        return payload

    def write_json(self, path: Path, *, extra: Optional[Dict[str, Any]] = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(extra=extra), indent=2, sort_keys=True), encoding="utf-8")
        return path
