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
"""Condition evaluator — evaluates @conditional_on_* decorators during startup."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rabbitfly.context.conditions import get_conditions

if TYPE_CHECKING:
    from rabbitfly.container.container import Container
    from rabbitfly.core.config import Config


# Condition types that depend on the bean registry (must be evaluated in pass 2).
_BEAN_DEPENDENT_TYPES = frozenset({"on_bean", "on_missing_bean"})


class ConditionEvaluator:
    """Evaluates @conditional_on_* decorators during ApplicationContext startup.

    Classes use a two-pass strategy:
    - **Pass 1:** conditions independent of the bean registry
      (``on_property``, ``on_class``).
    - **Pass 2:** bean-dependent conditions (``on_bean``,
      ``on_missing_bean``) against the registrations surviving pass 1.

    @bean methods are evaluated in one go, immediately before invocation,
    so they observe every bean registered by earlier factory methods.
    """

    def __init__(self, config: Config, container: Container) -> None:
        self._config = config
        self._container = container

    def should_include(self, cls: type, *, bean_pass: bool = False) -> bool:
        """Return True if all conditions of the given pass on *cls* hold."""
        for cond in get_conditions(cls):
            is_bean_dep = cond["type"] in _BEAN_DEPENDENT_TYPES
            if is_bean_dep != bean_pass:
                continue
            if not self._evaluate(cond, declaring_cls=cls):
                return False
        return True

    def should_invoke(self, method: Callable[..., Any]) -> bool:
        """Return True if every condition on a @bean method holds."""
        return all(self._evaluate(cond) for cond in get_conditions(method))

    def failed_condition(self, target: Any) -> dict[str, Any] | None:
        """First condition on *target* that does not hold, for diagnostics."""
        for cond in get_conditions(target):
            if not self._evaluate(cond):
                return cond
        return None

    # ------------------------------------------------------------------
    # Individual condition evaluators
    # ------------------------------------------------------------------

    def _evaluate(self, cond: dict, *, declaring_cls: type | None = None) -> bool:
        cond_type = cond["type"]
        if cond_type == "on_property":
            return self._eval_on_property(cond)
        if cond_type == "on_class":
            return cond["check"]()
        if cond_type == "on_missing_bean":
            return not self._container.has_bean_of_type(cond["bean_type"], exclude=declaring_cls)
        if cond_type == "on_bean":
            return self._container.has_bean_of_type(cond["bean_type"], exclude=declaring_cls)
        return True  # unknown condition type

    def _eval_on_property(self, cond: dict) -> bool:
        value = self._config.get(cond["key"])
        if value is None:
            return bool(cond.get("match_if_missing", False))
        text = str(value).lower()
        if cond["having_value"]:
            return text == cond["having_value"].lower()
        return text != "false"
