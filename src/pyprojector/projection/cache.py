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
"""Thread-safe, publish-once cache of projection schemas."""

from __future__ import annotations

import threading

import structlog

from pyprojector.projection.diagnostics import CacheHitEvent, DiagnosticsBus, SchemaResolvedEvent
from pyprojector.projection.schema import ProjectionSchema, SchemaExtractor

logger = structlog.get_logger("pyprojector.cache")


class SchemaCache:
    """Maps entity types to their schema, extracting each at most once.

    Published schemas are read without locking.  The first caller for an
    unseen type extracts it under a per-type gate; concurrent callers for
    the same type wait on that gate and then read the published schema.
    A failed extraction publishes nothing, so the next caller retries.

    Usage::

        cache = SchemaCache()
        schema = cache.resolve(Order)
        assert cache.resolve(Order) is schema
    """

    def __init__(
        self,
        extractor: SchemaExtractor | None = None,
        diagnostics: DiagnosticsBus | None = None,
    ) -> None:
        self._extractor = extractor if extractor is not None else SchemaExtractor()
        self._diagnostics = diagnostics if diagnostics is not None else DiagnosticsBus()
        self._schemas: dict[type, ProjectionSchema] = {}
        self._gates: dict[type, threading.Lock] = {}
        self._lock = threading.Lock()

    @property
    def extractor(self) -> SchemaExtractor:
        return self._extractor

    @property
    def diagnostics(self) -> DiagnosticsBus:
        return self._diagnostics

    def resolve(self, entity_type: type, diagnostics: DiagnosticsBus | None = None) -> ProjectionSchema:
        """Return the schema for *entity_type*, extracting it on first use.

        Args:
            entity_type: The entity class.
            diagnostics: Bus to report to instead of the cache's own.

        Raises:
            SchemaError: If extraction fails. Nothing is cached in that case.
        """
        bus = diagnostics if diagnostics is not None else self._diagnostics

        schema = self._schemas.get(entity_type)
        if schema is not None:
            bus.publish(CacheHitEvent(entity_type))
            return schema

        with self._lock:
            gate = self._gates.setdefault(entity_type, threading.Lock())

        with gate:
            schema = self._schemas.get(entity_type)
            if schema is not None:
                bus.publish(CacheHitEvent(entity_type))
                return schema

            try:
                schema = self._extractor.extract(entity_type)
            except Exception:
                logger.warning("schema_resolution_failed", entity_type=entity_type.__qualname__)
                raise

            self._schemas[entity_type] = schema
            with self._lock:
                self._gates.pop(entity_type, None)

        bus.publish(SchemaResolvedEvent(entity_type, schema.names))
        return schema

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)

    def evict(self, entity_type: type) -> bool:
        """Forget one published schema. For external invalidation only."""
        with self._lock:
            return self._schemas.pop(entity_type, None) is not None

    def clear(self) -> None:
        """Forget every published schema. For external invalidation only."""
        with self._lock:
            self._schemas.clear()


_default_cache: SchemaCache | None = None
_default_cache_lock = threading.Lock()


def default_schema_cache() -> SchemaCache:
    """The process-wide schema cache, created on first use."""
    global _default_cache
    if _default_cache is None:
        with _default_cache_lock:
            if _default_cache is None:
                _default_cache = SchemaCache()
    return _default_cache
