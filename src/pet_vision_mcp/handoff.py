"""In-memory handoff of finished analyses from the analyze tool to the results view."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .config import get_config
from .models.analysis import AnalysisResult


@dataclass
class StoredResult:
    """One analysis waiting to be shown."""

    result_id: str
    result: AnalysisResult
    degraded: bool = False
    source_name: str = ""
    created_at: datetime = field(default_factory=datetime.now)


class ResultStore:
    """Process-wide registry of recent analyses, bounded by count and TTL.

    Nothing is persisted; a restart empties the store.
    """

    def __init__(self) -> None:
        self._results: dict[str, StoredResult] = {}

    def put(self, result: AnalysisResult, *, degraded: bool = False, source_name: str = "") -> StoredResult:
        """Store *result* under a fresh id, evicting expired and then oldest entries."""
        self._evict_expired()
        cfg = get_config()
        while len(self._results) >= cfg.max_results:
            oldest_id = min(self._results, key=lambda k: self._results[k].created_at)
            del self._results[oldest_id]

        entry = StoredResult(
            result_id=uuid.uuid4().hex[:12],
            result=result,
            degraded=degraded,
            source_name=source_name,
        )
        self._results[entry.result_id] = entry
        return entry

    def get(self, result_id: str) -> StoredResult | None:
        """Look up a stored analysis; None when unknown or expired."""
        self._evict_expired()
        return self._results.get(result_id)

    def clear(self) -> None:
        self._results.clear()

    def _evict_expired(self) -> int:
        """Drop entries older than the configured TTL. Returns count evicted."""
        ttl = timedelta(minutes=get_config().result_ttl_minutes)
        now = datetime.now()
        expired = [rid for rid, r in self._results.items() if now - r.created_at > ttl]
        for rid in expired:
            del self._results[rid]
        return len(expired)

    @property
    def count(self) -> int:
        return len(self._results)


# Module-level singleton
result_store = ResultStore()
