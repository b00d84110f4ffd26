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
"""ProjectionHandle — fluent post-build mutation of a projection.

Example::

    value = (
        projector.create_projection(order)
        .drop_children()
        .add_property("total_qty", lambda o: sum(line.qty for line in o.lines))
        .to_value()
    )
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any, Generic, TypeVar

from pyprojector.kernel.exceptions import DuplicateProperty
from pyprojector.projection.model import Projection
from pyprojector.projection.schema import FieldKind, ProjectionSchema

E = TypeVar("E")


class ProjectionHandle(Generic[E]):
    """Wraps a built projection plus a layer of custom properties.

    Every mutation applies immediately and returns the handle for chaining.
    A failing mutation leaves the handle exactly as it was.
    """

    def __init__(self, entity: E, schema: ProjectionSchema, projection: Projection) -> None:
        self._entity = entity
        self._schema = schema
        self._projection = projection
        self._properties: dict[str, Any] = {}

    @property
    def entity(self) -> E:
        return self._entity

    @property
    def schema(self) -> ProjectionSchema:
        return self._schema

    @property
    def projection(self) -> Projection:
        """The base projection, without custom properties."""
        return self._projection

    @property
    def properties(self) -> Mapping[str, Any]:
        return MappingProxyType(self._properties)

    def drop_children(self) -> ProjectionHandle[E]:
        """Remove every reference and collection field. Idempotent."""
        for name in [name for name in self._projection if self._projection.kind_of(name).is_child]:
            self._projection._discard(name)
        return self

    def skip_children(self) -> ProjectionHandle[E]:
        """Same result as building with ``skip_children``.

        The projection is already built here, so this drops the children;
        pass ``ProjectionOptions(skip_children=True)`` to avoid building
        them at all.
        """
        return self.drop_children()

    def add_property(self, name: str, compute: Callable[[E], Any]) -> ProjectionHandle[E]:
        """Evaluate *compute* against the entity and store it as *name*.

        Raises:
            DuplicateProperty: If *name* is an exported field of the schema
                (even one dropped or omitted) or an already added property.
        """
        if name in self._schema or name in self._properties:
            raise DuplicateProperty(
                f"Property '{name}' already exists on the {self._schema.entity_type.__name__} projection",
                context={"name": name, "entity_type": self._schema.entity_type.__qualname__},
            )
        value = compute(self._entity)
        self._properties[name] = value
        return self

    def remove_property(self, name: str) -> ProjectionHandle[E]:
        """Remove a custom property. Exported fields cannot be removed this way."""
        if name not in self._properties:
            raise KeyError(name)
        del self._properties[name]
        return self

    def to_value(self) -> Projection:
        """The final projection: remaining fields followed by custom properties."""
        value = self._projection.copy()
        for name, prop in self._properties.items():
            value._put(name, prop, FieldKind.COMPUTED)
        return value

    def to_dict(self) -> dict[str, Any]:
        return self.to_value().to_dict()

    def __repr__(self) -> str:
        return f"ProjectionHandle({self.to_value()!r})"
