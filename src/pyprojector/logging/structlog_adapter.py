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
"""StructlogAdapter — renders pyprojector's structlog events through stdlib logging."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from pyprojector.config.properties.logging import LoggingProperties
from pyprojector.core.config import Config

_RENDERERS: dict[str, type[Any]] = {
    "console": structlog.dev.ConsoleRenderer,
    "json": structlog.processors.JSONRenderer,
}


def _level(value: Any) -> int:
    """``"debug"``, ``"DEBUG"`` or ``10`` -> ``10``."""
    if isinstance(value, int):
        return value
    levels = logging.getLevelNamesMapping()
    name = str(value).upper()
    if name not in levels:
        raise ValueError(f"Unknown log level '{value}'; expected one of {', '.join(sorted(levels))}")
    return levels[name]


class StructlogAdapter:
    """:class:`LoggingPort` backed by structlog.

    Binds :class:`LoggingProperties`: ``level.root`` sets the stdlib root
    threshold, every other ``level`` key sets one named logger (for example
    ``pyprojector.builder: DEBUG`` to see cycle short-circuits), and
    ``format`` picks the console or JSON renderer.
    """

    def __init__(self) -> None:
        self._properties = LoggingProperties()

    @property
    def properties(self) -> LoggingProperties:
        """Settings applied by the last :meth:`configure`."""
        return self._properties

    def configure(self, config: Config) -> None:
        """Apply ``pyprojector.logging.*``.

        Raises:
            ValueError: For an unknown format or level name. Nothing is
                applied in that case.
        """
        props = config.bind(LoggingProperties)
        renderer = _RENDERERS.get(props.format.lower())
        if renderer is None:
            raise ValueError(f"Unknown log format '{props.format}'; expected one of {', '.join(_RENDERERS)}")
        levels = {name: _level(value) for name, value in props.level.items()}
        root = levels.pop("root", logging.INFO)

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                renderer(),
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        logging.basicConfig(format="%(message)s", stream=sys.stdout, level=root, force=True)
        for name, level in levels.items():
            logging.getLogger(name).setLevel(level)
        self._properties = props

    def get_logger(self, name: str) -> Any:
        return structlog.get_logger(name)

    def set_level(self, name: str, level: str) -> None:
        logging.getLogger(name).setLevel(_level(level))
