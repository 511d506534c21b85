"""Prometheus-backed timer registry for catalog services.

Timers are addressed by a logical name plus tags (``catalog.home.request``,
``catalog_courses_request_seconds{endpoint="/catalog"}``). The logical name is
what dashboards and callers use; the exported Prometheus family name is
derived from it by replacing illegal characters with underscores and adding a
``_seconds`` suffix when missing.
"""

from __future__ import annotations

import re
import threading
import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Histogram,
    generate_latest,
)

DEFAULT_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)

_ILLEGAL_CHARS = re.compile(r"[^a-zA-Z0-9_:]")


def prometheus_name(name: str) -> str:
    """Map a logical timer name onto a Prometheus metric family name."""
    converted = _ILLEGAL_CHARS.sub("_", name)
    if converted[:1].isdigit():
        converted = f"_{converted}"
    if not converted.endswith("_seconds"):
        converted = f"{converted}_seconds"
    return converted


class Timer:
    """A named, tagged duration metric."""

    def __init__(
        self,
        name: str,
        tags: dict[str, str],
        histogram: Histogram,
        registry: CollectorRegistry,
    ) -> None:
        self.name = name
        self.tags = dict(tags)
        self.prometheus_name = prometheus_name(name)
        self._child = histogram.labels(**self.tags) if self.tags else histogram
        self._registry = registry

    def record(self, seconds: float) -> None:
        self._child.observe(seconds)

    def count(self) -> int:
        value = self._registry.get_sample_value(
            f"{self.prometheus_name}_count", self.tags
        )
        return int(value or 0)

    def total_time(self) -> float:
        value = self._registry.get_sample_value(
            f"{self.prometheus_name}_sum", self.tags
        )
        return float(value or 0.0)

    def __repr__(self) -> str:
        return f"Timer(name={self.name!r}, tags={self.tags!r})"


class TimerSample:
    """An in-flight measurement started with ``MetricsRegistry.start_sample``."""

    def __init__(self) -> None:
        self._start = time.perf_counter()
        self._stopped = False

    def stop(self, timer: Timer) -> float:
        """Record the elapsed time against ``timer`` and return it in seconds.

        Raises:
            RuntimeError: If the sample was already stopped.
        """
        if self._stopped:
            raise RuntimeError("timer sample already stopped")
        self._stopped = True
        elapsed = time.perf_counter() - self._start
        timer.record(elapsed)
        return elapsed


class MetricsRegistry:
    """Registry of timers exported through a Prometheus ``CollectorRegistry``.

    Safe for concurrent use; the same name and tag set always returns the same
    ``Timer``. All timers sharing a name must use the same tag keys.
    """

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        *,
        buckets: tuple[float, ...] = DEFAULT_BUCKETS,
    ) -> None:
        self.collector_registry = registry if registry is not None else CollectorRegistry()
        self._buckets = buckets
        self._lock = threading.Lock()
        self._histograms: dict[str, tuple[Histogram, tuple[str, ...]]] = {}
        self._timers: dict[tuple[str, tuple[tuple[str, str], ...]], Timer] = {}

    @staticmethod
    def _key(name: str, tags: dict[str, str]) -> tuple[str, tuple[tuple[str, str], ...]]:
        return name, tuple(sorted(tags.items()))

    def timer(self, name: str, description: str = "", **tags: str) -> Timer:
        """Get or create the timer for ``name`` and ``tags``.

        Raises:
            ValueError: If ``name`` was registered earlier with different tag keys.
        """
        tags = {key: str(value) for key, value in tags.items()}
        key = self._key(name, tags)
        with self._lock:
            existing = self._timers.get(key)
            if existing is not None:
                return existing

            histogram = self._get_or_create_histogram(
                name, description, tuple(sorted(tags))
            )
            timer = Timer(name, tags, histogram, self.collector_registry)
            self._timers[key] = timer
            return timer

    def _get_or_create_histogram(
        self, name: str, description: str, labelnames: tuple[str, ...]
    ) -> Histogram:
        family = prometheus_name(name)
        if family in self._histograms:
            histogram, existing_labels = self._histograms[family]
            if existing_labels != labelnames:
                raise ValueError(
                    f"timer '{name}' already registered with tags {list(existing_labels)}"
                )
            return histogram

        histogram = Histogram(
            family,
            description or f"Duration of {name}",
            labelnames=labelnames,
            buckets=self._buckets,
            registry=self.collector_registry,
        )
        self._histograms[family] = (histogram, labelnames)
        return histogram

    def find(self, name: str, **tags: str) -> Timer | None:
        """Return an existing timer, or None if it was never created."""
        tags = {key: str(value) for key, value in tags.items()}
        with self._lock:
            return self._timers.get(self._key(name, tags))

    def timers(self) -> list[Timer]:
        with self._lock:
            return list(self._timers.values())

    def start_sample(self) -> TimerSample:
        return TimerSample()

    def render(self) -> tuple[bytes, str]:
        """Render the Prometheus text exposition and its content type."""
        return generate_latest(self.collector_registry), CONTENT_TYPE_LATEST


__all__ = [
    "DEFAULT_BUCKETS",
    "MetricsRegistry",
    "Timer",
    "TimerSample",
    "prometheus_name",
]
