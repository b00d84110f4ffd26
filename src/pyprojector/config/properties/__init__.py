"""Typed configuration property classes for each PyProjector subsystem."""

from pyprojector.config.properties.logging import LoggingProperties
from pyprojector.config.properties.projection import ProjectionProperties

__all__ = [
    "LoggingProperties",
    "ProjectionProperties",
]
