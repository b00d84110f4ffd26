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
"""Unified exception hierarchy for PyProjector.

All projection errors inherit from ProjectorException, so callers can catch
one base type or target a specific failure.

Categories:
- SchemaError: a type's exported fields cannot be resolved
- DepthExceeded: the defensive recursion bound tripped during a build
- DuplicateProperty: a handle mutation would overwrite an existing name
"""

from __future__ import annotations


# =============================================================================
# Base Exception
# =============================================================================


class ProjectorException(Exception):
    """Base exception for all PyProjector errors.

    Carries an optional error code and context dict for structured error data.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "SCHEMA_INVALID").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    default_code: str | None = None

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code if code is not None else self.default_code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Schema Exceptions
# =============================================================================


class SchemaError(ProjectorException):
    """A marked field's type cannot be classified as scalar, reference or collection.

    Never cached: the next resolution of the same type retries extraction.
    """

    default_code = "SCHEMA_INVALID"


# =============================================================================
# Build Exceptions
# =============================================================================


class ProjectionException(ProjectorException):
    """Failure while walking an entity graph."""


class DepthExceeded(ProjectionException):
    """Recursion went deeper than the configured bound.

    Cycles are caught by the visited set long before this trips, so this
    points at a schema or entity graph far deeper than expected.
    """

    default_code = "DEPTH_EXCEEDED"


# =============================================================================
# Handle Exceptions
# =============================================================================


class DuplicateProperty(ProjectorException):
    """A custom property name collides with an exported field or earlier property."""

    default_code = "DUPLICATE_PROPERTY"
