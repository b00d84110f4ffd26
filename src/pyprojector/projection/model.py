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
"""Projection — the dynamically shaped record a build produces."""

from __future__ import annotations

from collections.abc import ItemsView, Iterator, KeysView, ValuesView
from typing import Any

from pyprojector.projection.schema import FieldKind


class Projection:
    """Ordered record of exported values for one entity.

    Read like a mapping (``p["id"]``) or an object (``p.id``).  Attribute
    access yields to the record's own members, so a field called ``items``,
    ``keys``, ``values``, ``get``, ``copy``, ``to_dict``, ``kind_of`` or
    ``entity_type`` is only reachable as ``p["items"]``.  Nested
    entities are themselves ``Projection`` instances and collections are
    lists of them.  Only the builder and :class:`ProjectionHandle` change
    a projection after creation.
    """

    __slots__ = ("_entity_type", "_values", "_kinds")

    def __init__(self, entity_type: type) -> None:
        self._entity_type = entity_type
        self._values: dict[str, Any] = {}
        self._kinds: dict[str, FieldKind] = {}

    @property
    def entity_type(self) -> type:
        return self._entity_type

    def kind_of(self, name: str) -> FieldKind:
        return self._kinds[name]

    def _put(self, name: str, value: Any, kind: FieldKind) -> None:
        self._values[name] = value
        self._kinds[name] = kind

    def _discard(self, name: str) -> None:
        self._values.pop(name, None)
        self._kinds.pop(name, None)

    def copy(self) -> Projection:
        """Shallow copy: same nested projections, independent top-level fields."""
        clone = Projection(self._entity_type)
        clone._values = dict(self._values)
        clone._kinds = dict(self._kinds)
        return clone

    # ------------------------------------------------------------------
    # Mapping-style access
    # ------------------------------------------------------------------

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def keys(self) -> KeysView[str]:
        return self._values.keys()

    def values(self) -> ValuesView[Any]:
        return self._values.values()

    def items(self) -> ItemsView[str, Any]:
        return self._values.items()

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(
                f"{self._entity_type.__name__} projection has no field '{name}'"
            ) from None

    # ------------------------------------------------------------------
    # Conversion and comparison
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Plain nested dicts and lists, in field order."""
        return {name: _plain(value) for name, value in self._values.items()}

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Projection):
            return self.to_dict() == other.to_dict()
        if isinstance(other, dict):
            return self.to_dict() == other
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        fields = ", ".join(f"{name}={value!r}" for name, value in self._values.items())
        return f"{self._entity_type.__name__}Projection({fields})"


def _plain(value: Any) -> Any:
    if isinstance(value, Projection):
        return value.to_dict()
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value
