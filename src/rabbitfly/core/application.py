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
"""Application bootstrap — the entry point for RabbitFly applications."""

from __future__ import annotations

import os
import time
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from rabbitfly.container.exceptions import BeanCreationException
from rabbitfly.core.config import Config
from rabbitfly.kernel.exceptions import ConfigurationError

if TYPE_CHECKING:
    from rabbitfly.context.application_context import ApplicationContext


class RabbitFlyApplication:
    """Bootstraps configuration, logging and the ApplicationContext.

    Startup sequence:
    1. Load configuration (explicit Config, else a YAML/TOML file plus
       profile overlays from ``RABBITFLY_PROFILES_ACTIVE``)
    2. Configure logging from ``rabbitfly.logging``
    3. Register user configurations, then the RabbitMQ auto-configurations
    4. ``startup()`` starts the context; ``shutdown()`` stops it
    """

    def __init__(
        self,
        config: Config | None = None,
        config_path: str | Path | None = None,
        configurations: Iterable[type] = (),
    ) -> None:
        self._startup_time: float = 0.0

        if config is None:
            config = self._load_config(config_path)
        self.config = config

        # Deferred imports to avoid circular imports
        from rabbitfly.amqp.auto_configuration import AUTO_CONFIGURATIONS
        from rabbitfly.context.application_context import ApplicationContext
        from rabbitfly.logging.structlog_adapter import StructlogAdapter

        self._logging = StructlogAdapter()
        self._logging.configure(self.config)
        self._logger = self._logging.get_logger("rabbitfly.core")

        self._context = ApplicationContext(self.config)
        for cls in configurations:
            self._context.register_bean(cls)
        for cls in AUTO_CONFIGURATIONS:
            self._context.register_bean(cls)

    @property
    def context(self) -> ApplicationContext:
        return self._context

    @property
    def startup_time_seconds(self) -> float:
        return self._startup_time

    async def startup(self) -> None:
        """Start the ApplicationContext; failures are logged and re-raised."""
        start = time.perf_counter()
        for source in self.config.loaded_sources:
            self._logger.info("loaded_config", source=source)

        try:
            await self._context.start()
        except BeanCreationException as exc:
            self._logger.error(
                "application_failed",
                error=str(exc),
                subsystem=exc.subsystem,
                provider=exc.provider,
            )
            raise
        except ConfigurationError as exc:
            self._logger.error("application_failed", error=str(exc), code=exc.code)
            raise

        self._startup_time = time.perf_counter() - start
        self._logger.info(
            "application_started",
            startup_time_s=round(self._startup_time, 3),
            beans_initialized=self._context.bean_count,
        )

    async def shutdown(self) -> None:
        self._logger.info("shutting_down")
        await self._context.stop()

    @staticmethod
    def _load_config(config_path: str | Path | None) -> Config:
        profiles = [
            p.strip() for p in os.environ.get("RABBITFLY_PROFILES_ACTIVE", "").split(",") if p.strip()
        ]
        if config_path is not None:
            return Config.from_file(config_path, active_profiles=profiles)
        for candidate in ["rabbitfly.yaml", "rabbitfly.toml", "config/rabbitfly.yaml", "config/rabbitfly.toml"]:
            if Path(candidate).is_file():
                return Config.from_file(candidate, active_profiles=profiles)
        return Config()
