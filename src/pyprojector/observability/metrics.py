# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Metrics collection with Prometheus-compatible counters and histograms."""

from __future__ import annotations

import functools
import threading
import time
import weakref
from collections.abc import Callable
from typing import Any, TypeVar

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

F = TypeVar("F", bound=Callable[..., Any])

# Metric objects per collector registry, shared by every MetricsRegistry on it.
_registered: weakref.WeakKeyDictionary[CollectorRegistry, dict[str, Any]] = weakref.WeakKeyDictionary()
_registered_lock = threading.Lock()


class MetricsRegistry:
    """Registry for projection metrics.

    Wraps prometheus_client and ensures each metric name is registered only
    once per ``CollectorRegistry``, however many ``MetricsRegistry`` objects
    point at it. Pass a dedicated ``CollectorRegistry`` to keep metrics out of the
    process-wide default registry.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry if registry is not None else REGISTRY
        with _registered_lock:
            self._metrics = _registered.setdefault(self._registry, {})

    @property
    def collector_registry(self) -> CollectorRegistry:
        return self._registry

    def counter(self, name: str, description: str, labels: list[str] | None = None) -> Counter:
        """Get or create a counter metric."""
        with _registered_lock:
            if name not in self._metrics:
                self._metrics[name] = Counter(name, description, labels or [], registry=self._registry)
            return self._metrics[name]  # type: ignore[no-any-return]

    def histogram(
        self,
        name: str,
        description: str,
        labels: list[str] | None = None,
        buckets: tuple[float, ...] | None = None,
    ) -> Histogram:
        """Get or create a histogram metric."""
        with _registered_lock:
            if name not in self._metrics:
                kwargs: dict[str, Any] = {"registry": self._registry}
                if buckets:
                    kwargs["buckets"] = buckets
                self._metrics[name] = Histogram(name, description, labels or [], **kwargs)
            return self._metrics[name]  # type: ignore[no-any-return]


def timed(registry: MetricsRegistry, name: str, description: str) -> Callable[[F], F]:
    """Decorator that records function execution duration as a histogram.

    Usage:
        @timed(registry, "pyprojector_build_seconds", "Projection build time")
        def create_projection(entity): ...
    """

    def decorator(func: F) -> F:
        histogram = registry.histogram(name, description)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                histogram.observe(time.perf_counter() - start)

        return wrapper  # type: ignore[return-value]

    return decorator
