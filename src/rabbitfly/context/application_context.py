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
"""ApplicationContext — the central bean registry and lifecycle manager."""

from __future__ import annotations

import inspect
import typing
from collections.abc import Callable, Iterator
from typing import Any, TypeVar

import structlog

from rabbitfly.container.container import Container
from rabbitfly.container.exceptions import BeanCreationException
from rabbitfly.container.ordering import get_order
from rabbitfly.container.registry import Registration
from rabbitfly.container.types import Scope
from rabbitfly.context.condition_evaluator import ConditionEvaluator
from rabbitfly.context.post_processor import BeanPostProcessor
from rabbitfly.core.config import Config
from rabbitfly.kernel.exceptions import ConfigurationError
from rabbitfly.kernel.lifecycle import Lifecycle

T = TypeVar("T")

logger = structlog.get_logger("rabbitfly.context")


def _marked_methods(instance: Any, marker: str) -> Iterator[Callable[..., Any]]:
    """Yield bound methods of *instance* whose function carries *marker*.

    Walks class dictionaries rather than ``dir(instance)`` so properties are
    never evaluated.
    """
    seen: set[str] = set()
    for klass in type(instance).__mro__:
        for attr_name, attr in vars(klass).items():
            if attr_name in seen:
                continue
            seen.add(attr_name)
            if getattr(attr, marker, False):
                yield getattr(instance, attr_name)


class ApplicationContext:
    """Central bean registry, lifecycle manager and auto-configuration driver.

    Wraps the DI Container and adds:
    - @bean factory method processing for @configuration classes
    - @conditional_on_* evaluation for classes and individual @bean methods
    - @post_construct / @pre_destroy lifecycle
    - BeanPostProcessor hooks
    - Lifecycle.start() / stop() for background beans
    """

    def __init__(self, config: Config) -> None:
        self._config = config
        self._container = Container()
        self._post_processors: list[BeanPostProcessor] = []
        self._lifecycle_beans: list[Lifecycle] = []
        self._started = False

        self._container.register_instance(Config, config)

    # ------------------------------------------------------------------
    # Bean registration
    # ------------------------------------------------------------------

    def register_bean(self, cls: type, **kwargs: Any) -> None:
        """Register a bean or configuration class with the context."""
        name = kwargs.get("name", "") or getattr(cls, "__rabbitfly_bean_name__", "")
        scope = kwargs.get("scope") or getattr(cls, "__rabbitfly_scope__", Scope.SINGLETON)
        self._container.register(cls, scope=scope, name=name)

    def register_instance(self, instance: Any, bean_type: type | None = None, name: str = "") -> None:
        """Register an already-built bean, e.g. a caller-supplied connection factory.

        Auto-configuration never replaces a bean registered this way.
        """
        self._container.register_instance(bean_type or type(instance), instance, name=name)

    def register_post_processor(self, processor: BeanPostProcessor) -> None:
        self._post_processors.append(processor)

    # ------------------------------------------------------------------
    # Bean access
    # ------------------------------------------------------------------

    def get_bean(self, bean_type: type[T]) -> T:
        """Resolve a bean by type."""
        return self._container.resolve(bean_type)

    def get_bean_by_name(self, name: str) -> Any:
        return self._container.resolve_by_name(name)

    def get_beans_of_type(self, bean_type: type[T]) -> list[T]:
        """Resolve all beans of the given type, sorted by @order."""
        results = self._container.resolve_all(bean_type)
        return sorted(results, key=lambda b: get_order(type(b)))

    def get_bean_if_unique(self, bean_type: type[T]) -> T | None:
        """The bean of the given type if exactly one exists, else None."""
        return self._container.get_if_unique(bean_type)

    def contains_bean(self, name: str) -> bool:
        return self._container.contains(name)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def container(self) -> Container:
        """Escape hatch: direct access to the underlying Container."""
        return self._container

    @property
    def config(self) -> Config:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._started

    @property
    def bean_count(self) -> int:
        """Number of beans holding an instance."""
        return sum(1 for reg in self._container.registrations if reg.instance is not None)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the context: run configurations, lifecycle hooks and Lifecycle beans."""
        try:
            await self._do_start()
        except (BeanCreationException, ConfigurationError):
            raise
        except Exception as exc:
            raise BeanCreationException(
                subsystem="startup",
                provider="context",
                reason=str(exc),
            ) from exc

    async def _do_start(self) -> None:
        evaluator = ConditionEvaluator(self._config, self._container)

        # 1. Class conditions that do not depend on other beans
        self._filter_registrations(evaluator, bean_pass=False)

        # 2. User @configuration classes
        self._process_configurations(evaluator, auto=False)

        # 3. Bean-dependent class conditions, now that user beans exist,
        #    then @auto_configuration classes in @order
        self._filter_registrations(evaluator, bean_pass=True)
        self._process_configurations(evaluator, auto=True)

        # 4. Eagerly resolve remaining singletons
        for reg in sorted(self._container.registrations, key=lambda r: get_order(r.impl_type)):
            if reg.scope == Scope.SINGLETON and reg.instance is None:
                self._container.resolve(reg.impl_type)

        # 5. Post-processors and @post_construct
        for reg in self._container.registrations:
            if isinstance(reg.instance, BeanPostProcessor) and reg.instance not in self._post_processors:
                self._post_processors.append(reg.instance)
        sorted_pps = sorted(self._post_processors, key=lambda pp: get_order(type(pp)))

        for reg in self._container.registrations:
            if reg.instance is None:
                continue
            bean_name = self._bean_name(reg)
            for pp in sorted_pps:
                reg.instance = pp.before_init(reg.instance, bean_name)
            await self._invoke_marked(reg.instance, "__rabbitfly_post_construct__")
            for pp in sorted_pps:
                reg.instance = pp.after_init(reg.instance, bean_name)

        # 6. Lifecycle beans
        for reg in self._container.registrations:
            if isinstance(reg.instance, Lifecycle):
                await reg.instance.start()
                self._lifecycle_beans.append(reg.instance)

        self._started = True
        logger.info("context_started", beans=self.bean_count)

    async def stop(self) -> None:
        """Stop Lifecycle beans, then call @pre_destroy, both in reverse order."""
        for lifecycle_bean in reversed(self._lifecycle_beans):
            try:
                await lifecycle_bean.stop()
            except Exception as exc:
                logger.warning(
                    "lifecycle_stop_failed",
                    bean=type(lifecycle_bean).__name__,
                    error=str(exc),
                )
        self._lifecycle_beans.clear()

        for reg in reversed(self._container.registrations):
            if reg.instance is not None:
                await self._invoke_marked(reg.instance, "__rabbitfly_pre_destroy__")

        self._started = False
        logger.info("context_stopped")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _bean_name(reg: Registration) -> str:
        return reg.name or reg.impl_type.__name__

    def _filter_registrations(self, evaluator: ConditionEvaluator, *, bean_pass: bool) -> None:
        to_remove = [
            reg.impl_type
            for reg in self._container.registrations
            if reg.instance is None and not evaluator.should_include(reg.impl_type, bean_pass=bean_pass)
        ]
        for cls in to_remove:
            logger.debug("condition_not_matched", bean=cls.__name__, bean_pass=bean_pass)
            self._container.remove(cls)

    def _process_configurations(self, evaluator: ConditionEvaluator, *, auto: bool) -> None:
        """Instantiate @configuration classes and run their @bean methods.

        Args:
            auto: When False, process only user @configuration classes.
                  When True, process only @auto_configuration classes.
        """
        configs = [
            reg
            for reg in self._container.registrations
            if getattr(reg.impl_type, "__rabbitfly_stereotype__", "") == "configuration"
            and getattr(reg.impl_type, "__rabbitfly_auto_configuration__", False) == auto
        ]
        configs.sort(key=lambda reg: get_order(reg.impl_type))

        for reg in configs:
            config_instance = self._container.resolve(reg.impl_type)
            for attr_name, method in self._bean_methods(config_instance):
                if not evaluator.should_invoke(method):
                    logger.debug(
                        "bean_skipped",
                        configuration=reg.impl_type.__name__,
                        bean=attr_name,
                        condition=(evaluator.failed_condition(method) or {}).get("type"),
                    )
                    continue

                return_type = typing.get_type_hints(method).get("return")
                if return_type is None:
                    continue

                result = self._call_bean_method(method)
                if result is None:
                    continue

                bean_name = getattr(method, "__rabbitfly_bean_name__", "") or attr_name
                self._container.register_instance(return_type, result, name=bean_name)
                logger.debug(
                    "bean_registered",
                    configuration=reg.impl_type.__name__,
                    bean=bean_name,
                    type=type(result).__name__,
                )

    @staticmethod
    def _bean_methods(config_instance: Any) -> list[tuple[str, Callable[..., Any]]]:
        """@bean methods in definition order, base classes first."""
        found: dict[str, None] = {}
        for klass in reversed(type(config_instance).__mro__):
            for attr_name, attr in vars(klass).items():
                if getattr(attr, "__rabbitfly_bean__", False):
                    found.pop(attr_name, None)
                    found[attr_name] = None
        return [(name, getattr(config_instance, name)) for name in found]

    def _call_bean_method(self, method: Callable[..., Any]) -> Any:
        """Call a @bean method, injecting its parameters from the container."""
        hints = typing.get_type_hints(method)
        hints.pop("return", None)

        kwargs: dict[str, Any] = {}
        for param_name, param_type in hints.items():
            kwargs[param_name] = self._container.resolve_param(param_type)

        return method(**kwargs)

    @staticmethod
    async def _invoke_marked(instance: Any, marker: str) -> None:
        for method in _marked_methods(instance, marker):
            result = method()
            if inspect.isawaitable(result):
                await result
