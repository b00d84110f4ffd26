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
"""Projection schemas and the extractor that derives them from export markers.

A schema is the ordered, immutable list of exported fields of one entity
type.  Each field carries a prebuilt accessor, so building a projection
never inspects types again.
"""

from __future__ import annotations

import collections.abc
import datetime
import decimal
import fractions
import operator
import pathlib
import types
import uuid
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Union, get_args, get_origin

import structlog

from pyprojector.kernel.exceptions import SchemaError
from pyprojector.projection.markers import AnnotationMetadataProvider, FieldMarker, FieldMetadataProvider

logger = structlog.get_logger("pyprojector.schema")

_SCALAR_TYPES: frozenset[type] = frozenset(
    {
        int,
        float,
        complex,
        bool,
        str,
        bytes,
        bytearray,
        decimal.Decimal,
        fractions.Fraction,
        datetime.datetime,
        datetime.date,
        datetime.time,
        datetime.timedelta,
        uuid.UUID,
        pathlib.PurePath,
        pathlib.Path,
        type(None),
        # Unparameterised containers are copied as-is.
        list,
        tuple,
        set,
        frozenset,
        dict,
    }
)

_COLLECTION_ORIGINS: frozenset[Any] = frozenset(
    {
        list,
        tuple,
        set,
        frozenset,
        collections.abc.Sequence,
        collections.abc.MutableSequence,
        collections.abc.Set,
        collections.abc.MutableSet,
        collections.abc.Collection,
        collections.abc.Iterable,
    }
)

_MAPPING_ORIGINS: frozenset[Any] = frozenset(
    {dict, collections.abc.Mapping, collections.abc.MutableMapping}
)

_UNION_ORIGINS: frozenset[Any] = frozenset({Union, types.UnionType})


class FieldKind(Enum):
    """How a field is carried into the projection."""

    SCALAR = "scalar"
    REFERENCE = "reference"
    COLLECTION = "collection"
    # Values layered on by ProjectionHandle.add_property; never in a schema.
    COMPUTED = "computed"

    @property
    def is_child(self) -> bool:
        return self in (FieldKind.REFERENCE, FieldKind.COLLECTION)


@dataclass(frozen=True)
class FieldDescriptor:
    """One exported field: name, prebuilt accessor, kind and nested type."""

    name: str
    accessor: Callable[[Any], Any] = field(compare=False, repr=False)
    kind: FieldKind = FieldKind.SCALAR
    nested_type: type | None = None


@dataclass(frozen=True)
class ProjectionSchema:
    """Ordered exported fields of one entity type. Immutable once published."""

    entity_type: type
    fields: tuple[FieldDescriptor, ...]

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, name: object) -> bool:
        return name in self.names

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    @property
    def children(self) -> tuple[FieldDescriptor, ...]:
        """Reference and collection descriptors."""
        return tuple(f for f in self.fields if f.kind.is_child)

    def get(self, name: str) -> FieldDescriptor | None:
        for descriptor in self.fields:
            if descriptor.name == name:
                return descriptor
        return None


class SchemaExtractor:
    """Introspects one entity type into a :class:`ProjectionSchema`.

    Classification of each exported field's declared type
    (``Optional``/``| None`` is unwrapped first):

    1. A class with at least one exported field is a ``REFERENCE``.
    2. A list/tuple/set/sequence of such a class is a ``COLLECTION``.
    3. Known value types, enums, ``Any`` and containers of those are ``SCALAR``.
    4. Anything else raises :class:`SchemaError`.
    """

    def __init__(self, provider: FieldMetadataProvider | None = None) -> None:
        self._provider = provider if provider is not None else AnnotationMetadataProvider()

    @property
    def provider(self) -> FieldMetadataProvider:
        return self._provider

    def extract(self, entity_type: type) -> ProjectionSchema:
        """Build the schema for *entity_type*.

        Raises:
            SchemaError: If a marked field cannot be classified, or the type
                exports no field at all.
        """
        descriptors = tuple(
            self._describe(entity_type, marker)
            for marker in self._provider.markers(entity_type)
            if marker.exported
        )
        if not descriptors:
            raise SchemaError(
                f"{entity_type.__qualname__} has no exported fields",
                context={"entity_type": entity_type.__qualname__},
            )
        logger.debug(
            "schema_extracted",
            entity_type=entity_type.__qualname__,
            fields=[d.name for d in descriptors],
        )
        return ProjectionSchema(entity_type=entity_type, fields=descriptors)

    def is_projectable(self, candidate: Any) -> bool:
        """True when *candidate* is a class exporting at least one field."""
        if not isinstance(candidate, type) or self._is_scalar_type(candidate):
            return False
        return any(marker.exported for marker in self._provider.markers(candidate))

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def _describe(self, entity_type: type, marker: FieldMarker) -> FieldDescriptor:
        kind, nested_type = self._classify(marker.declared_type)
        if kind is None:
            raise SchemaError(
                f"Field '{entity_type.__qualname__}.{marker.name}' is marked for export but its type "
                f"{marker.declared_type!r} is neither a supported scalar nor a projectable entity",
                context={"entity_type": entity_type.__qualname__, "field": marker.name},
            )
        return FieldDescriptor(
            name=marker.name,
            accessor=operator.attrgetter(marker.name),
            kind=kind,
            nested_type=nested_type,
        )

    def _classify(self, hint: Any) -> tuple[FieldKind | None, type | None]:
        hint = _unwrap_optional(hint)
        origin = get_origin(hint)

        if origin is None:
            if self._is_scalar_hint(hint):
                return FieldKind.SCALAR, None
            if self.is_projectable(hint):
                return FieldKind.REFERENCE, hint
            return None, None

        if origin in _COLLECTION_ORIGINS:
            element = _collection_element(hint)
            if element is not None:
                element = _unwrap_optional(element)
                if get_origin(element) is None and self.is_projectable(element):
                    return FieldKind.COLLECTION, element

        if self._is_scalar_hint(hint):
            return FieldKind.SCALAR, None
        return None, None

    def _is_scalar_hint(self, hint: Any) -> bool:
        if hint is Any or hint is Ellipsis:
            return True
        origin = get_origin(hint)
        if origin is None:
            return isinstance(hint, type) and self._is_scalar_type(hint)
        if origin is Literal:
            return True
        if origin in _UNION_ORIGINS or origin in _COLLECTION_ORIGINS or origin in _MAPPING_ORIGINS:
            return all(self._is_scalar_hint(arg) for arg in get_args(hint))
        return False

    @staticmethod
    def _is_scalar_type(candidate: type) -> bool:
        return candidate in _SCALAR_TYPES or issubclass(candidate, (Enum, pathlib.PurePath))


def _unwrap_optional(hint: Any) -> Any:
    """``X | None`` -> ``X``; other unions are returned unchanged."""
    if get_origin(hint) in _UNION_ORIGINS:
        args = [arg for arg in get_args(hint) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint


def _collection_element(hint: Any) -> Any | None:
    """Single element type of a homogeneous collection hint, if it has one."""
    args = get_args(hint)
    if get_origin(hint) is tuple:
        return args[0] if len(args) == 2 and args[1] is Ellipsis else None
    return args[0] if len(args) == 1 else None
