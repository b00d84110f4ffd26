"""PyProjector Kernel — Foundation layer with zero external dependencies."""

from pyprojector.kernel.exceptions import (
    DepthExceeded,
    DuplicateProperty,
    ProjectionException,
    ProjectorException,
    SchemaError,
)

__all__ = [
    # Base
    "ProjectorException",
    # Schema
    "SchemaError",
    # Build
    "ProjectionException",
    "DepthExceeded",
    # Handle
    "DuplicateProperty",
]
