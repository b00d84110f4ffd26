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
"""PyProjector Projection — entity to projection engine.

Fields opt in with export markers; schemas are extracted once per type and
cached; builds walk the entity graph, omitting back-references to entities
already visited; handles allow pruning and computed properties afterwards.
"""

from pyprojector.projection.builder import ProjectionBuilder
from pyprojector.projection.cache import SchemaCache, default_schema_cache
from pyprojector.projection.context import CycleGuard, TraversalContext
from pyprojector.projection.diagnostics import (
    CacheHitEvent,
    CycleDetectedEvent,
    DiagnosticEvent,
    DiagnosticsBus,
    LoggingDiagnosticsListener,
    MetricsDiagnosticsListener,
    SchemaResolvedEvent,
)
from pyprojector.projection.handle import ProjectionHandle
from pyprojector.projection.markers import (
    AnnotationMetadataProvider,
    Exclude,
    Export,
    FieldMarker,
    FieldMetadataProvider,
    MappingMetadataProvider,
    excluded,
    exported,
)
from pyprojector.projection.model import Projection
from pyprojector.projection.projector import (
    ProjectionOptions,
    Projector,
    create_projection,
    default_projector,
)
from pyprojector.projection.schema import FieldDescriptor, FieldKind, ProjectionSchema, SchemaExtractor

__all__ = [
    # Markers
    "AnnotationMetadataProvider",
    "Exclude",
    "Export",
    "FieldMarker",
    "FieldMetadataProvider",
    "MappingMetadataProvider",
    "excluded",
    "exported",
    # Schema
    "FieldDescriptor",
    "FieldKind",
    "ProjectionSchema",
    "SchemaCache",
    "SchemaExtractor",
    "default_schema_cache",
    # Build
    "CycleGuard",
    "Projection",
    "ProjectionBuilder",
    "TraversalContext",
    # Entry point
    "ProjectionHandle",
    "ProjectionOptions",
    "Projector",
    "create_projection",
    "default_projector",
    # Diagnostics
    "CacheHitEvent",
    "CycleDetectedEvent",
    "DiagnosticEvent",
    "DiagnosticsBus",
    "LoggingDiagnosticsListener",
    "MetricsDiagnosticsListener",
    "SchemaResolvedEvent",
]
