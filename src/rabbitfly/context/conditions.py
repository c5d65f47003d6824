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
"""Conditional decorators — control when configurations and @bean methods apply.

Every decorator works on a configuration class and on an individual @bean
method. Class conditions decide whether the whole class is processed; method
conditions are checked right before the factory method would run.
"""

from __future__ import annotations

import importlib
from typing import Any, TypeVar

from rabbitfly.container.types import Scope

T = TypeVar("T")

_CONDITIONS_ATTR = "__rabbitfly_conditions__"


def _add_condition(target: Any, condition: dict[str, Any]) -> Any:
    # Copy so a subclass never appends to its parent's list
    conditions = list(getattr(target, _CONDITIONS_ATTR, []))
    conditions.append(condition)
    setattr(target, _CONDITIONS_ATTR, conditions)
    return target


def get_conditions(target: Any) -> list[dict[str, Any]]:
    """Return the conditions attached to a class or function."""
    return list(getattr(target, _CONDITIONS_ATTR, []))


def conditional_on_property(
    key: str,
    having_value: str = "",
    match_if_missing: bool = False,
) -> Any:
    """Only apply if the given config property matches.

    With ``having_value`` the property must equal it (case-insensitive);
    without, any value other than ``false`` matches. ``match_if_missing``
    decides the outcome when the property is absent.
    """

    def decorator(target: T) -> T:
        return _add_condition(target, {
            "type": "on_property",
            "key": key,
            "having_value": having_value,
            "match_if_missing": match_if_missing,
        })

    return decorator


def is_available(module_name: str) -> bool:
    """Check if a module is importable."""
    try:
        importlib.import_module(module_name)
        return True
    except ImportError:
        return False


def conditional_on_class(*module_names: str) -> Any:
    """Only apply if every named module is importable."""

    def _check() -> bool:
        return all(is_available(name) for name in module_names)

    def decorator(target: T) -> T:
        return _add_condition(target, {
            "type": "on_class",
            "module_names": module_names,
            "check": _check,
        })

    return decorator


def conditional_on_missing_bean(bean_type: type) -> Any:
    """Only apply if no bean of the given type has been registered."""

    def decorator(target: T) -> T:
        return _add_condition(target, {
            "type": "on_missing_bean",
            "bean_type": bean_type,
        })

    return decorator


def conditional_on_bean(bean_type: type) -> Any:
    """Only apply if a bean of the given type has been registered."""

    def decorator(target: T) -> T:
        return _add_condition(target, {"type": "on_bean", "bean_type": bean_type})

    return decorator


def auto_configuration(cls: T) -> T:
    """Mark a configuration class as auto-configuration.

    Auto-configuration classes:
    - Are processed AFTER user @configuration classes
    - Get implicit @order(1000) (lower priority)
    - Work with @conditional_on_* decorators on the class and its @bean methods
    """
    cls.__rabbitfly_auto_configuration__ = True  # type: ignore[attr-defined]
    cls.__rabbitfly_injectable__ = True  # type: ignore[attr-defined]
    cls.__rabbitfly_stereotype__ = "configuration"  # type: ignore[attr-defined]
    if not hasattr(cls, "__rabbitfly_scope__"):
        cls.__rabbitfly_scope__ = Scope.SINGLETON  # type: ignore[attr-defined]
    if not hasattr(cls, "__rabbitfly_order__"):
        cls.__rabbitfly_order__ = 1000  # type: ignore[attr-defined]
    return cls
