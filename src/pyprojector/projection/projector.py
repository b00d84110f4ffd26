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
"""Projector — entry point turning entities into projection handles.

Example::

    projector = Projector()
    handle = projector.create_projection(order)
    handle.to_dict()
    # {"id": 1, "total": 50, "customer": {...}, "lines": [...]}

    projector.create_projection(order, ProjectionOptions(skip_children=True)).to_dict()
    # {"id": 1, "total": 50}
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

from pyprojector.config.properties.projection import ProjectionProperties
from pyprojector.core.config import Config
from pyprojector.observability.metrics import MetricsRegistry, timed
from pyprojector.projection.builder import ProjectionBuilder
from pyprojector.projection.cache import SchemaCache, default_schema_cache
from pyprojector.projection.context import TraversalContext
from pyprojector.projection.diagnostics import (
    DiagnosticsBus,
    LoggingDiagnosticsListener,
    MetricsDiagnosticsListener,
)
from pyprojector.projection.handle import ProjectionHandle
from pyprojector.projection.model import Projection
from pyprojector.projection.schema import ProjectionSchema

logger = structlog.get_logger("pyprojector.projector")

E = TypeVar("E")


@dataclass(frozen=True)
class ProjectionOptions:
    """Per-call settings for :meth:`Projector.create_projection`.

    Attributes:
        skip_children: Leave reference and collection fields out of the
            build entirely.
    """

    skip_children: bool = False


class Projector:
    """Creates projections against a shared :class:`SchemaCache`.

    Each call gets its own traversal context, so one projector serves
    any number of threads.

    Args:
        cache: Schema cache; the process-wide cache when omitted.
        diagnostics: Bus receiving this projector's events; a private bus
            when omitted.
        max_depth: Defensive nesting bound, see :class:`DepthExceeded`.
        skip_children: Default for calls made without options.
        metrics: When given, build durations are recorded as a histogram.
    """

    def __init__(
        self,
        cache: SchemaCache | None = None,
        *,
        diagnostics: DiagnosticsBus | None = None,
        max_depth: int = 64,
        skip_children: bool = False,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        self._cache = cache if cache is not None else default_schema_cache()
        self._diagnostics = diagnostics if diagnostics is not None else DiagnosticsBus()
        self._builder = ProjectionBuilder(self._cache, self._diagnostics)
        self._max_depth = max_depth
        self._default_options = ProjectionOptions(skip_children=skip_children)

        self._build = self._build_root
        if metrics is not None:
            self._build = timed(metrics, "pyprojector_build_seconds", "Projection build duration")(
                self._build_root
            )

    @classmethod
    def from_config(
        cls,
        config: Config,
        cache: SchemaCache | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> Projector:
        """Wire a projector from ``pyprojector.projection.*`` settings."""
        props = config.bind(ProjectionProperties)
        diagnostics = DiagnosticsBus()
        if props.log_diagnostics:
            LoggingDiagnosticsListener().attach(diagnostics)
        if props.metrics_enabled:
            metrics = metrics if metrics is not None else MetricsRegistry()
            MetricsDiagnosticsListener(metrics).attach(diagnostics)
        else:
            metrics = None

        logger.debug(
            "projector_configured",
            max_depth=props.max_depth,
            skip_children=props.skip_children,
            metrics_enabled=props.metrics_enabled,
        )
        return cls(
            cache,
            diagnostics=diagnostics,
            max_depth=props.max_depth,
            skip_children=props.skip_children,
            metrics=metrics,
        )

    @property
    def cache(self) -> SchemaCache:
        return self._cache

    @property
    def diagnostics(self) -> DiagnosticsBus:
        return self._diagnostics

    def create_projection(self, entity: E, options: ProjectionOptions | None = None) -> ProjectionHandle[E]:
        """Project *entity* and wrap the result in a handle.

        Raises:
            SchemaError: If the entity's type, or a nested type, cannot be
                resolved. No partial projection is returned.
            DepthExceeded: If nesting passes ``max_depth``.
        """
        if entity is None:
            raise ValueError("Cannot project None")
        opts = options if options is not None else self._default_options
        schema = self._cache.resolve(type(entity), self._diagnostics)
        projection = self._build(entity, schema, opts)
        logger.debug(
            "projection_built",
            entity_type=schema.entity_type.__qualname__,
            fields=len(projection),
            skip_children=opts.skip_children,
        )
        return ProjectionHandle(entity, schema, projection)

    def create_projections(
        self,
        entities: Iterable[E],
        options: ProjectionOptions | None = None,
    ) -> list[ProjectionHandle[E]]:
        """Project each entity independently, preserving order."""
        return [self.create_projection(entity, options) for entity in entities]

    def _build_root(self, entity: Any, schema: ProjectionSchema, options: ProjectionOptions) -> Projection:
        context = TraversalContext.for_root(
            entity,
            skip_children=options.skip_children,
            max_depth=self._max_depth,
        )
        return self._builder.build(entity, schema, context)


_default_projector: Projector | None = None
_default_projector_lock = threading.Lock()


def default_projector() -> Projector:
    """Process-wide projector configured from the packaged defaults and env vars."""
    global _default_projector
    if _default_projector is None:
        with _default_projector_lock:
            if _default_projector is None:
                _default_projector = Projector.from_config(Config.defaults())
    return _default_projector


def create_projection(entity: E, options: ProjectionOptions | None = None) -> ProjectionHandle[E]:
    """Project *entity* with the process-wide projector."""
    return default_projector().create_projection(entity, options)
