from dataclasses import dataclass, fields


@dataclass
class FetchMetrics:
    """Track hit/miss counters and timings for one fetcher."""

    total_fetches: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    forced_fetches: int = 0
    stale_refreshes: int = 0
    stale_fallbacks: int = 0
    upstream_errors: int = 0
    upstream_calls: int = 0
    total_lookup_time_ms: float = 0.0
    total_upstream_time_ms: float = 0.0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate over non-forced fetches."""
        lookups = self.cache_hits + self.cache_misses
        if lookups == 0:
            return 0.0
        return self.cache_hits / lookups

    @property
    def avg_lookup_time_ms(self) -> float:
        """Calculate average store lookup time."""
        lookups = self.cache_hits + self.cache_misses
        if lookups == 0:
            return 0.0
        return self.total_lookup_time_ms / lookups

    @property
    def avg_upstream_time_ms(self) -> float:
        """Calculate average live call time."""
        if self.upstream_calls == 0:
            return 0.0
        return self.total_upstream_time_ms / self.upstream_calls

    def record_hit(self, lookup_time_ms: float) -> None:
        """Record a cache hit."""
        self.total_fetches += 1
        self.cache_hits += 1
        self.total_lookup_time_ms += lookup_time_ms

    def record_miss(self, lookup_time_ms: float, stale: bool = False) -> None:
        """Record a cache miss (absent or stale entry)."""
        self.total_fetches += 1
        self.cache_misses += 1
        self.total_lookup_time_ms += lookup_time_ms
        if stale:
            self.stale_refreshes += 1

    def record_forced(self) -> None:
        """Record a fetch that skipped the cache read."""
        self.total_fetches += 1
        self.forced_fetches += 1

    def record_upstream_call(self, duration_ms: float, failed: bool = False) -> None:
        """Record a live upstream call."""
        self.upstream_calls += 1
        self.total_upstream_time_ms += duration_ms
        if failed:
            self.upstream_errors += 1

    def record_stale_fallback(self) -> None:
        """Record a failed refresh answered with a stale entry."""
        self.stale_fallbacks += 1

    def reset(self) -> None:
        """Zero every counter."""
        for f in fields(self):
            setattr(self, f.name, f.default)

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "total_fetches": self.total_fetches,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "forced_fetches": self.forced_fetches,
            "stale_refreshes": self.stale_refreshes,
            "stale_fallbacks": self.stale_fallbacks,
            "upstream_errors": self.upstream_errors,
            "upstream_calls": self.upstream_calls,
            "hit_rate": self.hit_rate,
            "avg_lookup_time_ms": self.avg_lookup_time_ms,
            "avg_upstream_time_ms": self.avg_upstream_time_ms,
        }
