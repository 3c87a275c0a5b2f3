"""
Hark Metrics: in-process counters, gauges and duration samples.

Usage:
    from hark.core.metrics import metrics

    metrics.inc("turns.started")
    metrics.inc("conversation.events", labels={"kind": "AudioData"})
    metrics.observe("turn.duration_ms", 812.5)
    metrics.gauge_set("session.active", 1)

    metrics.snapshot()  # served on GET /metrics
"""

from __future__ import annotations

import time
from collections import defaultdict


class MetricsCollector:
    """Counters, gauges and a bounded window of observations per metric."""

    MAX_SAMPLES = 500

    _instance: "MetricsCollector | None" = None

    @classmethod
    def get(cls) -> "MetricsCollector":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def __init__(self) -> None:
        self._counters: dict[str, int] = defaultdict(int)
        self._gauges: dict[str, float] = {}
        self._samples: dict[str, list[float]] = defaultdict(list)
        self._started_at = time.time()

    def inc(self, name: str, value: int = 1, labels: dict | None = None) -> None:
        self._counters[self._key(name, labels)] += value

    def gauge_set(self, name: str, value: float, labels: dict | None = None) -> None:
        self._gauges[self._key(name, labels)] = value

    def observe(self, name: str, value: float, labels: dict | None = None) -> None:
        """Record one observation; the oldest is dropped past MAX_SAMPLES."""
        samples = self._samples[self._key(name, labels)]
        samples.append(value)
        if len(samples) > self.MAX_SAMPLES:
            del samples[0]

    def counter(self, name: str, labels: dict | None = None) -> int:
        return self._counters.get(self._key(name, labels), 0)

    def snapshot(self) -> dict:
        observations: dict[str, dict] = {}
        for key, samples in self._samples.items():
            if not samples:
                continue
            ordered = sorted(samples)
            n = len(ordered)
            observations[key] = {
                "count": n,
                "min": ordered[0],
                "max": ordered[-1],
                "p50": ordered[n // 2],
                "p95": ordered[min(int(n * 0.95), n - 1)],
            }
        return {
            "uptime_seconds": round(time.time() - self._started_at, 1),
            "counters": dict(self._counters),
            "gauges": dict(self._gauges),
            "observations": observations,
        }

    def reset(self) -> None:
        self._counters.clear()
        self._gauges.clear()
        self._samples.clear()

    def _key(self, name: str, labels: dict | None) -> str:
        # "conversation.events{kind=AudioData}"
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"


metrics = MetricsCollector.get()
