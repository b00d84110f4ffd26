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
"""ProjectionBuilder — walks an entity graph along cached schemas."""

from __future__ import annotations

import copy
from typing import Any

import structlog

from pyprojector.projection.cache import SchemaCache
from pyprojector.projection.context import TraversalContext
from pyprojector.projection.diagnostics import CycleDetectedEvent, DiagnosticsBus
from pyprojector.projection.model import Projection
from pyprojector.projection.schema import FieldDescriptor, FieldKind, ProjectionSchema

logger = structlog.get_logger("pyprojector.builder")

_OMITTED = object()


class ProjectionBuilder:
    """Produces :class:`Projection` instances from entities.

    Field handling, in schema order:

    1. Scalars are copied (mutable builtin containers shallow-copied).
    2. References and collections are left out entirely when the context
       skips children.
    3. ``None`` references stay ``None``; ``None`` collections become ``[]``.
    4. An entity already visited in this build is omitted, both as a
       reference and as a collection element, and a
       :class:`CycleDetectedEvent` is published.
    5. Anything else is projected recursively, with the nested schema
       resolved from the entity's runtime type.
    """

    def __init__(self, cache: SchemaCache, diagnostics: DiagnosticsBus | None = None) -> None:
        self._cache = cache
        self._diagnostics = diagnostics if diagnostics is not None else cache.diagnostics

    def build(self, entity: Any, schema: ProjectionSchema, context: TraversalContext) -> Projection:
        """Project *entity* using *schema*.

        Raises:
            DepthExceeded: If nesting passes ``context.max_depth``.
            SchemaError: If a nested entity's schema cannot be resolved.
        """
        projection = Projection(schema.entity_type)
        for descriptor in schema:
            if descriptor.kind is FieldKind.SCALAR:
                projection._put(descriptor.name, _copy_scalar(descriptor.accessor(entity)), FieldKind.SCALAR)
            elif not context.skip_children:
                self._build_child_field(projection, descriptor, descriptor.accessor(entity), context)
        return projection

    def _build_child_field(
        self,
        projection: Projection,
        descriptor: FieldDescriptor,
        value: Any,
        context: TraversalContext,
    ) -> None:
        if descriptor.kind is FieldKind.REFERENCE:
            if value is None:
                projection._put(descriptor.name, None, FieldKind.REFERENCE)
                return
            nested = self._project_child(value, descriptor.name, context)
            if nested is not _OMITTED:
                projection._put(descriptor.name, nested, FieldKind.REFERENCE)
            return

        items: list[Projection | None] = []
        for index, element in enumerate(value if value is not None else ()):
            if element is None:
                items.append(None)
                continue
            nested = self._project_child(element, f"{descriptor.name}[{index}]", context)
            if nested is not _OMITTED:
                items.append(nested)
        projection._put(descriptor.name, items, FieldKind.COLLECTION)

    def _project_child(self, entity: Any, segment: str, context: TraversalContext) -> Any:
        if not context.guard.visit(entity):
            path = context.current_path(segment)
            logger.debug("cycle_short_circuited", entity_type=type(entity).__qualname__, path=".".join(path))
            self._diagnostics.publish(CycleDetectedEvent(type(entity), path))
            return _OMITTED

        with context.descend(segment):
            schema = self._cache.resolve(type(entity), self._diagnostics)
            return self.build(entity, schema, context)


def _copy_scalar(value: Any) -> Any:
    if isinstance(value, (list, dict, set)):
        return copy.copy(value)
    return value
