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
"""Per-build traversal state: visited identities, skip flag and depth."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from pyprojector.kernel.exceptions import DepthExceeded


class CycleGuard:
    """Identity-keyed set of entities seen during one top-level build.

    Keys are ``id()`` values; every visited entity is reachable from the
    root for the whole build, so identities stay unique while the guard lives.
    """

    __slots__ = ("_seen",)

    def __init__(self) -> None:
        self._seen: set[int] = set()

    def visit(self, entity: Any) -> bool:
        """Record *entity*; False if it was already visited."""
        key = id(entity)
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    def __contains__(self, entity: Any) -> bool:
        return id(entity) in self._seen

    def __len__(self) -> int:
        return len(self._seen)


@dataclass
class TraversalContext:
    """State owned by one top-level build and its recursion. Never shared."""

    skip_children: bool = False
    max_depth: int = 64
    guard: CycleGuard = field(default_factory=CycleGuard)
    depth: int = 0
    path: list[str] = field(default_factory=list)

    @classmethod
    def for_root(cls, entity: Any, *, skip_children: bool = False, max_depth: int = 64) -> TraversalContext:
        """Context for building *entity*, with the root already marked visited."""
        context = cls(skip_children=skip_children, max_depth=max_depth, path=[type(entity).__name__])
        context.guard.visit(entity)
        return context

    def current_path(self, *segments: str) -> tuple[str, ...]:
        return (*self.path, *segments)

    @contextmanager
    def descend(self, segment: str) -> Iterator[None]:
        """Enter one nesting level below the current entity.

        Raises:
            DepthExceeded: If the new depth would pass ``max_depth``.
        """
        if self.depth >= self.max_depth:
            raise DepthExceeded(
                f"Projection depth exceeded the bound of {self.max_depth} at {'.'.join(self.current_path(segment))}",
                context={"max_depth": self.max_depth, "path": self.current_path(segment)},
            )
        self.depth += 1
        self.path.append(segment)
        try:
            yield
        finally:
            self.path.pop()
            self.depth -= 1
