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
"""Tests for ProjectionBuilder — graph walking, cycles and the depth bound."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated

import pytest

from pyprojector.kernel.exceptions import DepthExceeded, SchemaError
from pyprojector.projection.builder import ProjectionBuilder
from pyprojector.projection.cache import SchemaCache
from pyprojector.projection.context import TraversalContext
from pyprojector.projection.diagnostics import CycleDetectedEvent, DiagnosticsBus
from pyprojector.projection.markers import Export
from pyprojector.projection.model import Projection
from pyprojector.projection.schema import FieldKind

# ---------------------------------------------------------------------------
# Test types
# ---------------------------------------------------------------------------


@dataclass
class Author:
    id: Annotated[int, Export()]
    name: Annotated[str, Export()]
    books: Annotated[list[Book], Export()] = field(default_factory=list)


@dataclass
class Book:
    id: Annotated[int, Export()]
    title: Annotated[str, Export()]
    author: Annotated[Author | None, Export()] = None
    keywords: Annotated[list[str], Export()] = field(default_factory=list)
    isbn: str = ""


@dataclass
class Link:
    name: Annotated[str, Export()]
    next: Annotated[Link | None, Export()] = None


@dataclass
class Shelf:
    label: Annotated[str, Export()]
    books: Annotated[list[Book] | None, Export()] = None
    featured: Annotated[Book | None, Export()] = None


@dataclass
class SignedBook(Book):
    signature: Annotated[str, Export()] = ""


class Opaque:
    pass


def ring(k: int) -> Link:
    links = [Link(name=f"n{i}") for i in range(k)]
    for i, link in enumerate(links):
        link.next = links[(i + 1) % k]
    return links[0]


def chain(n: int) -> Link:
    head = Link(name="n0")
    current = head
    for i in range(1, n):
        current.next = Link(name=f"n{i}")
        current = current.next
    return head


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class BuilderHarness:
    def __init__(self, max_depth: int = 64) -> None:
        self.cache = SchemaCache()
        self.bus = DiagnosticsBus()
        self.cycles: list[CycleDetectedEvent] = []
        self.bus.subscribe(CycleDetectedEvent, self.cycles.append)
        self.builder = ProjectionBuilder(self.cache, self.bus)
        self.max_depth = max_depth

    def build(self, entity: object, *, skip_children: bool = False) -> Projection:
        context = TraversalContext.for_root(entity, skip_children=skip_children, max_depth=self.max_depth)
        return self.builder.build(entity, self.cache.resolve(type(entity)), context)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestScalarFields:
    def test_scalars_copied_in_schema_order(self) -> None:
        book = Book(id=1, title="Dune", isbn="978")

        result = BuilderHarness().build(book)

        assert list(result.keys()) == ["id", "title", "author", "keywords"]
        assert result.id == 1
        assert result.title == "Dune"
        assert "isbn" not in result

    def test_mutable_scalar_containers_are_copied(self) -> None:
        book = Book(id=1, title="Dune", keywords=["sand", "spice"])

        result = BuilderHarness().build(book)
        book.keywords.append("worm")

        assert result.keywords == ["sand", "spice"]


class TestNestedProjection:
    def test_reference_replaced_by_nested_projection(self) -> None:
        book = Book(id=1, title="Dune", author=Author(id=9, name="Frank"))

        result = BuilderHarness().build(book)

        assert isinstance(result.author, Projection)
        assert result.author.to_dict() == {"id": 9, "name": "Frank", "books": []}
        assert result.kind_of("author") is FieldKind.REFERENCE

    def test_collection_keeps_length_and_order(self) -> None:
        books = [Book(id=i, title=f"t{i}") for i in range(5)]
        shelf = Shelf(label="sf", books=books)

        result = BuilderHarness().build(shelf)

        assert [b.id for b in result.books] == [0, 1, 2, 3, 4]
        assert result.kind_of("books") is FieldKind.COLLECTION

    def test_empty_collection_projects_to_empty_list(self) -> None:
        result = BuilderHarness().build(Shelf(label="empty", books=[]))

        assert result.books == []

    def test_none_collection_projects_to_empty_list(self) -> None:
        result = BuilderHarness().build(Shelf(label="none", books=None))

        assert result.books == []

    def test_none_reference_projects_to_none(self) -> None:
        result = BuilderHarness().build(Shelf(label="none"))

        assert "featured" in result
        assert result.featured is None

    def test_runtime_subclass_uses_its_own_schema(self) -> None:
        shelf = Shelf(label="sf", featured=SignedBook(id=1, title="Dune", signature="FH"))

        result = BuilderHarness().build(shelf)

        assert result.featured.signature == "FH"

    def test_nested_entity_of_unprojectable_type_fails(self) -> None:
        shelf = Shelf(label="bad", featured=Opaque())  # type: ignore[arg-type]

        with pytest.raises(SchemaError):
            BuilderHarness().build(shelf)


class TestSkipChildren:
    def test_reference_and_collection_fields_are_absent(self) -> None:
        book = Book(id=1, title="Dune", author=Author(id=9, name="Frank"))

        result = BuilderHarness().build(book, skip_children=True)

        assert result.to_dict() == {"id": 1, "title": "Dune", "keywords": []}

    def test_none_children_are_absent_too(self) -> None:
        result = BuilderHarness().build(Shelf(label="x"), skip_children=True)

        assert result.to_dict() == {"label": "x"}


class TestCycles:
    @pytest.mark.parametrize("k", [1, 2, 3, 10, 40])
    def test_ring_terminates_and_back_reference_is_omitted(self, k: int) -> None:
        harness = BuilderHarness()

        result = harness.build(ring(k))

        depth = 0
        current = result
        while "next" in current:
            current = current.next
            depth += 1
        assert depth == k - 1
        assert current.name == f"n{k - 1}"
        assert len(harness.cycles) == 1

    def test_cycle_event_carries_path(self) -> None:
        harness = BuilderHarness()

        harness.build(ring(2))

        assert harness.cycles[0].path == ("Link", "next", "next")
        assert harness.cycles[0].entity_type is Link

    def test_bidirectional_reference_through_collection(self) -> None:
        author = Author(id=9, name="Frank")
        author.books = [Book(id=1, title="Dune", author=author), Book(id=2, title="Messiah", author=author)]
        harness = BuilderHarness()

        result = harness.build(author)

        assert result.to_dict() == {
            "id": 9,
            "name": "Frank",
            "books": [
                {"id": 1, "title": "Dune", "keywords": []},
                {"id": 2, "title": "Messiah", "keywords": []},
            ],
        }
        assert [event.path for event in harness.cycles] == [
            ("Author", "books[0]", "author"),
            ("Author", "books[1]", "author"),
        ]

    def test_element_seen_earlier_is_dropped_from_collection(self) -> None:
        book = Book(id=1, title="Dune")
        shelf = Shelf(label="dup", books=[book, book], featured=None)

        result = BuilderHarness().build(shelf)

        assert [b.id for b in result.books] == [1]

    def test_visited_set_is_per_build(self) -> None:
        harness = BuilderHarness()
        link = ring(3)

        first = harness.build(link)
        second = harness.build(link)

        assert first == second


class TestDepthBound:
    def test_deep_chain_raises_depth_exceeded(self) -> None:
        with pytest.raises(DepthExceeded) as exc_info:
            BuilderHarness(max_depth=3).build(chain(10))

        assert exc_info.value.code == "DEPTH_EXCEEDED"
        assert exc_info.value.context["max_depth"] == 3
        assert exc_info.value.context["path"] == ("Link", "next", "next", "next", "next")

    def test_chain_within_bound_builds(self) -> None:
        result = BuilderHarness(max_depth=3).build(chain(4))

        assert result.next.next.next.to_dict() == {"name": "n3", "next": None}

    def test_zero_depth_allows_scalar_only_builds(self) -> None:
        harness = BuilderHarness(max_depth=0)

        assert harness.build(Link(name="solo")).to_dict() == {"name": "solo", "next": None}
        assert harness.build(chain(2), skip_children=True).to_dict() == {"name": "n0"}
        with pytest.raises(DepthExceeded):
            harness.build(chain(2))
