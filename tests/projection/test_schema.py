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
"""Tests for SchemaExtractor — field classification and schema building."""

from __future__ import annotations

import datetime
import enum
import uuid
from collections.abc import Callable, Sequence
from dataclasses import FrozenInstanceError, dataclass, field
from decimal import Decimal
from typing import Annotated, Any, Optional

import pytest

from pyprojector.kernel.exceptions import SchemaError
from pyprojector.projection.markers import Export, MappingMetadataProvider
from pyprojector.projection.schema import FieldKind, ProjectionSchema, SchemaExtractor

# ---------------------------------------------------------------------------
# Test types
# ---------------------------------------------------------------------------


class Status(enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class Tag:
    label: Annotated[str, Export()]


@dataclass
class Owner:
    id: Annotated[int, Export()]
    name: Annotated[str, Export()]


@dataclass
class Unmarked:
    value: int


@dataclass
class Ticket:
    id: Annotated[int, Export()]
    title: Annotated[str, Export()]
    status: Annotated[Status, Export()]
    price: Annotated[Decimal, Export()]
    created: Annotated[datetime.datetime, Export()]
    ref: Annotated[uuid.UUID, Export()]
    owner: Annotated[Owner, Export()]
    reviewer: Annotated[Optional[Owner], Export()]
    watchers: Annotated[list[Owner], Export()]
    tags: Annotated[tuple[Tag, ...], Export()]
    related: Annotated[Sequence[Tag] | None, Export()]
    labels: Annotated[list[str], Export()]
    scores: Annotated[dict[str, float], Export()]
    extra: Annotated[Any, Export()]
    notes: str = ""


@dataclass
class Node:
    name: Annotated[str, Export()]
    parent: Annotated[Node | None, Export()] = None
    children: Annotated[list[Node], Export()] = field(default_factory=list)


@dataclass
class HoldsUnmarked:
    id: Annotated[int, Export()]
    thing: Annotated[Unmarked, Export()]


@dataclass
class HoldsUnmarkedList:
    id: Annotated[int, Export()]
    things: Annotated[list[Unmarked], Export()]


@dataclass
class HoldsCallable:
    id: Annotated[int, Export()]
    hook: Annotated[Callable[[], None], Export()]


@dataclass
class NothingExported:
    id: int


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestClassification:
    def setup_method(self) -> None:
        self.schema = SchemaExtractor().extract(Ticket)

    def kind(self, name: str) -> FieldKind:
        descriptor = self.schema.get(name)
        assert descriptor is not None
        return descriptor.kind

    def test_value_types_are_scalar(self) -> None:
        for name in ("id", "title", "status", "price", "created", "ref", "extra"):
            assert self.kind(name) is FieldKind.SCALAR, name

    def test_containers_of_scalars_are_scalar(self) -> None:
        assert self.kind("labels") is FieldKind.SCALAR
        assert self.kind("scores") is FieldKind.SCALAR

    def test_projectable_class_is_reference(self) -> None:
        owner = self.schema.get("owner")
        assert owner is not None
        assert owner.kind is FieldKind.REFERENCE
        assert owner.nested_type is Owner

    def test_optional_reference_is_unwrapped(self) -> None:
        reviewer = self.schema.get("reviewer")
        assert reviewer is not None
        assert reviewer.kind is FieldKind.REFERENCE
        assert reviewer.nested_type is Owner

    def test_collections_of_projectable_class(self) -> None:
        for name, nested in (("watchers", Owner), ("tags", Tag), ("related", Tag)):
            descriptor = self.schema.get(name)
            assert descriptor is not None
            assert descriptor.kind is FieldKind.COLLECTION, name
            assert descriptor.nested_type is nested, name

    def test_unmarked_field_is_absent(self) -> None:
        assert "notes" not in self.schema

    def test_order_follows_declaration(self) -> None:
        assert self.schema.names == (
            "id",
            "title",
            "status",
            "price",
            "created",
            "ref",
            "owner",
            "reviewer",
            "watchers",
            "tags",
            "related",
            "labels",
            "scores",
            "extra",
        )

    def test_children_lists_reference_and_collection_fields(self) -> None:
        assert [d.name for d in self.schema.children] == ["owner", "reviewer", "watchers", "tags", "related"]


class TestSelfReference:
    def test_self_referencing_type_resolves(self) -> None:
        schema = SchemaExtractor().extract(Node)

        parent = schema.get("parent")
        children = schema.get("children")
        assert parent is not None and parent.kind is FieldKind.REFERENCE
        assert children is not None and children.kind is FieldKind.COLLECTION
        assert parent.nested_type is Node


class TestAccessors:
    def test_accessor_reads_field_from_instance(self) -> None:
        schema = SchemaExtractor().extract(Owner)
        owner = Owner(id=7, name="ada")

        assert [d.accessor(owner) for d in schema] == [7, "ada"]


class TestSchemaErrors:
    def test_unmarked_class_reference_is_reported(self) -> None:
        with pytest.raises(SchemaError) as exc_info:
            SchemaExtractor().extract(HoldsUnmarked)

        assert exc_info.value.code == "SCHEMA_INVALID"
        assert exc_info.value.context == {"entity_type": "HoldsUnmarked", "field": "thing"}

    def test_collection_of_unmarked_class_is_reported(self) -> None:
        with pytest.raises(SchemaError, match="things"):
            SchemaExtractor().extract(HoldsUnmarkedList)

    def test_unsupported_type_is_reported(self) -> None:
        with pytest.raises(SchemaError, match="hook"):
            SchemaExtractor().extract(HoldsCallable)

    def test_type_without_exported_fields_is_reported(self) -> None:
        with pytest.raises(SchemaError, match="no exported fields"):
            SchemaExtractor().extract(NothingExported)


class TestProjectability:
    def test_is_projectable(self) -> None:
        extractor = SchemaExtractor()

        assert extractor.is_projectable(Owner) is True
        assert extractor.is_projectable(Unmarked) is False
        assert extractor.is_projectable(int) is False
        assert extractor.is_projectable(Status) is False


class TestCustomProvider:
    def test_extractor_consults_given_provider(self) -> None:
        provider = MappingMetadataProvider()
        provider.register(Unmarked, include=["value"])

        schema = SchemaExtractor(provider).extract(HoldsUnmarked)

        thing = schema.get("thing")
        assert thing is not None
        assert thing.kind is FieldKind.REFERENCE


class TestSchemaImmutability:
    def test_schema_is_frozen(self) -> None:
        schema = SchemaExtractor().extract(Owner)

        assert isinstance(schema, ProjectionSchema)
        assert isinstance(schema.fields, tuple)
        with pytest.raises(FrozenInstanceError):
            schema.fields = ()  # type: ignore[misc]
        with pytest.raises(FrozenInstanceError):
            schema.fields[0].name = "other"  # type: ignore[misc]
