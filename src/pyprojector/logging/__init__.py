"""PyProjector Logging — logging port and structlog adapter."""

from pyprojector.logging.port import LoggingPort
from pyprojector.logging.structlog_adapter import StructlogAdapter

__all__ = ["LoggingPort", "StructlogAdapter"]
