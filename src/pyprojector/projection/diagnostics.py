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
"""Diagnostic events and the in-process bus that carries them.

Publishing with no subscribers is a no-op, so projections behave the same
whether or not anything is listening.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

import structlog

from pyprojector.observability.metrics import MetricsRegistry

logger = structlog.get_logger("pyprojector.diagnostics")

E = TypeVar("E", bound="DiagnosticEvent")

DiagnosticListener = Callable[["DiagnosticEvent"], None]


@dataclass(frozen=True)
class DiagnosticEvent:
    """Base class for all projection diagnostic events."""


@dataclass(frozen=True)
class SchemaResolvedEvent(DiagnosticEvent):
    """A schema was extracted and published for the first time."""

    entity_type: type
    field_names: tuple[str, ...]


@dataclass(frozen=True)
class CacheHitEvent(DiagnosticEvent):
    """An already published schema was served."""

    entity_type: type


@dataclass(frozen=True)
class CycleDetectedEvent(DiagnosticEvent):
    """A reference to an already visited entity was omitted.

    ``path`` starts with the root entity's type name followed by the field
    segments leading to the omitted reference, e.g.
    ``("Order", "customer", "orders[0]")``.
    """

    entity_type: type
    path: tuple[str, ...]


class DiagnosticsBus:
    """Synchronous in-process bus for :class:`DiagnosticEvent` instances."""

    def __init__(self) -> None:
        self._listeners: dict[type[DiagnosticEvent], list[DiagnosticListener]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: type[E], listener: Callable[[E], None]) -> None:
        """Register a listener for an event type (and its subclasses)."""
        with self._lock:
            listeners = list(self._listeners.get(event_type, ()))
            listeners.append(listener)  # type: ignore[arg-type]
            self._listeners[event_type] = listeners

    def unsubscribe(self, event_type: type[E], listener: Callable[[E], None]) -> None:
        with self._lock:
            listeners = [registered for registered in self._listeners.get(event_type, ()) if registered != listener]
            self._listeners[event_type] = listeners

    @property
    def has_listeners(self) -> bool:
        return any(self._listeners.values())

    def publish(self, event: DiagnosticEvent) -> None:
        """Deliver *event* to every listener subscribed to a matching type."""
        for event_type, listeners in tuple(self._listeners.items()):
            if isinstance(event, event_type):
                for listener in listeners:
                    listener(event)


class LoggingDiagnosticsListener:
    """Writes diagnostic events to structlog at debug level."""

    def attach(self, bus: DiagnosticsBus) -> LoggingDiagnosticsListener:
        bus.subscribe(DiagnosticEvent, self)
        return self

    def __call__(self, event: DiagnosticEvent) -> None:
        if isinstance(event, SchemaResolvedEvent):
            logger.debug(
                "schema_resolved",
                entity_type=event.entity_type.__qualname__,
                fields=list(event.field_names),
            )
        elif isinstance(event, CacheHitEvent):
            logger.debug("schema_cache_hit", entity_type=event.entity_type.__qualname__)
        elif isinstance(event, CycleDetectedEvent):
            logger.debug(
                "cycle_detected",
                entity_type=event.entity_type.__qualname__,
                path=".".join(event.path),
            )


class MetricsDiagnosticsListener:
    """Counts diagnostic events as Prometheus counters labelled by entity type."""

    def __init__(self, metrics: MetricsRegistry) -> None:
        self._resolved = metrics.counter(
            "pyprojector_schema_resolved_total", "Schemas extracted and published", ["entity_type"]
        )
        self._hits = metrics.counter(
            "pyprojector_schema_cache_hits_total", "Schemas served from the cache", ["entity_type"]
        )
        self._cycles = metrics.counter(
            "pyprojector_cycles_detected_total", "Back-references omitted by the cycle guard", ["entity_type"]
        )

    def attach(self, bus: DiagnosticsBus) -> MetricsDiagnosticsListener:
        bus.subscribe(DiagnosticEvent, self)
        return self

    def __call__(self, event: DiagnosticEvent) -> None:
        if isinstance(event, SchemaResolvedEvent):
            self._resolved.labels(entity_type=event.entity_type.__qualname__).inc()
        elif isinstance(event, CacheHitEvent):
            self._hits.labels(entity_type=event.entity_type.__qualname__).inc()
        elif isinstance(event, CycleDetectedEvent):
            self._cycles.labels(entity_type=event.entity_type.__qualname__).inc()
