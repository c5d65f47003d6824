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
"""Lightweight DI container with type-hint based resolution."""

from __future__ import annotations

import inspect
import types
import typing
from typing import Any, TypeVar, Union, cast, get_args, get_origin

from rabbitfly.container.exceptions import (
    BeanCurrentlyInCreationError,
    NoSuchBeanError,
    NoUniqueBeanError,
)
from rabbitfly.container.registry import Registration
from rabbitfly.container.types import Scope

T = TypeVar("T")


def _protocol_members(protocol: type) -> set[str]:
    """Attribute names a runtime-checkable protocol requires."""
    members: set[str] = set()
    for base in protocol.__mro__:
        if base is object or not getattr(base, "_is_protocol", False) or base.__name__ in ("Protocol", "Generic"):
            continue
        members.update(getattr(base, "__annotations__", {}))
        members.update(name for name in vars(base) if not name.startswith("_"))
    return members


def _declares(cls: type, name: str) -> bool:
    return hasattr(cls, name) or any(name in getattr(k, "__annotations__", {}) for k in cls.__mro__)


def _matches(reg: Registration, bean_type: type) -> bool:
    """True if *reg* can satisfy a dependency on *bean_type*."""
    if reg.impl_type is bean_type:
        return True
    try:
        if issubclass(reg.impl_type, bean_type):
            return True
    except TypeError:
        # Protocols with data members only support isinstance(); classes
        # registered without an instance are checked member by member
        if reg.instance is None and getattr(bean_type, "_is_protocol", False):
            return all(_declares(reg.impl_type, name) for name in _protocol_members(bean_type))
    try:
        return reg.instance is not None and isinstance(reg.instance, bean_type)
    except TypeError:
        return False


class Container:
    """Dependency injection container.

    Beans are keyed by the type they were registered under. Lookups by a
    base class or runtime-checkable protocol match every registration whose
    key type or held instance satisfies it. Supports constructor injection
    via type hints, ``T | None`` (resolved only when exactly one candidate
    exists), ``list[T]``, @primary disambiguation and circular dependency
    detection.
    """

    def __init__(self) -> None:
        self._registrations: dict[type, Registration] = {}
        self._named: dict[str, Registration] = {}
        self._resolving: dict[type, None] = {}  # insertion-ordered, O(1) lookup

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        cls: type,
        scope: Scope = Scope.SINGLETON,
        name: str = "",
    ) -> Registration:
        """Register a class to be instantiated on first resolution."""
        bean_name = name or getattr(cls, "__rabbitfly_bean_name__", "")
        bean_scope = getattr(cls, "__rabbitfly_scope__", None) or scope
        reg = Registration(
            impl_type=cls,
            scope=bean_scope,
            name=bean_name,
            primary=getattr(cls, "__rabbitfly_primary__", False),
        )
        self._add(reg)
        return reg

    def register_instance(self, bean_type: type, instance: Any, name: str = "") -> Registration:
        """Register an already-built singleton under *bean_type*."""
        reg = Registration(
            impl_type=bean_type,
            scope=Scope.SINGLETON,
            instance=instance,
            name=name,
            primary=getattr(type(instance), "__rabbitfly_primary__", False),
        )
        self._add(reg)
        return reg

    def _add(self, reg: Registration) -> None:
        previous = self._registrations.get(reg.impl_type)
        if previous is not None and previous.name:
            self._named.pop(previous.name, None)
        self._registrations[reg.impl_type] = reg
        if reg.name:
            self._named[reg.name] = reg

    def remove(self, cls: type) -> None:
        """Remove a registration and its named entry."""
        reg = self._registrations.pop(cls)
        if reg.name and self._named.get(reg.name) is reg:
            del self._named[reg.name]

    @property
    def registrations(self) -> list[Registration]:
        """All registrations in registration order."""
        return list(self._registrations.values())

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def candidates(self, bean_type: type) -> list[Registration]:
        """Registrations able to satisfy *bean_type*, in registration order."""
        return [reg for reg in self._registrations.values() if _matches(reg, bean_type)]

    def has_bean_of_type(self, bean_type: type, *, exclude: type | None = None) -> bool:
        return any(reg.impl_type is not exclude for reg in self.candidates(bean_type))

    def contains(self, name: str) -> bool:
        return name in self._named

    def resolve(self, cls: type[T]) -> T:
        """Resolve the single bean satisfying *cls*."""
        if cls in self._registrations:
            return cast(T, self._resolve_registration(self._registrations[cls]))

        matches = self.candidates(cls)
        if not matches:
            raise NoSuchBeanError(bean_type=cls)
        if len(matches) == 1:
            return cast(T, self._resolve_registration(matches[0]))

        primaries = [reg for reg in matches if reg.primary]
        if len(primaries) == 1:
            return cast(T, self._resolve_registration(primaries[0]))

        raise NoUniqueBeanError(bean_type=cls, candidates=[reg.instance_type for reg in matches])

    def resolve_by_name(self, name: str) -> Any:
        if name not in self._named:
            raise NoSuchBeanError(bean_name=name)
        return self._resolve_registration(self._named[name])

    def resolve_all(self, cls: type[T]) -> list[T]:
        """Resolve every bean satisfying *cls*."""
        return [self._resolve_registration(reg) for reg in self.candidates(cls)]

    def get_if_unique(self, cls: type[T]) -> T | None:
        """Return the bean satisfying *cls* if exactly one exists, else None.

        Ambiguity is not an error here and @primary is not consulted: two
        candidates are treated the same as none.
        """
        matches = self.candidates(cls)
        if len(matches) != 1:
            return None
        return cast(T, self._resolve_registration(matches[0]))

    # ------------------------------------------------------------------
    # Instantiation
    # ------------------------------------------------------------------

    def _resolve_registration(self, reg: Registration) -> Any:
        if reg.scope == Scope.SINGLETON and reg.instance is not None:
            return reg.instance

        instance = self._create_instance(reg)

        if reg.scope == Scope.SINGLETON:
            reg.instance = instance

        return instance

    def _create_instance(self, reg: Registration) -> Any:
        """Create an instance, resolving constructor dependencies."""
        if reg.impl_type in self._resolving:
            chain = list(self._resolving.keys())
            raise BeanCurrentlyInCreationError(chain=chain, current=reg.impl_type)
        self._resolving[reg.impl_type] = None
        try:
            init = reg.impl_type.__init__  # type: ignore[misc]
            if init is object.__init__:
                return reg.impl_type()

            hints = typing.get_type_hints(init)
            hints.pop("return", None)
            sig = inspect.signature(init)

            kwargs: dict[str, Any] = {}
            for param_name, param_type in hints.items():
                param = sig.parameters.get(param_name)
                has_default = param is not None and param.default is not inspect.Parameter.empty
                try:
                    kwargs[param_name] = self.resolve_param(param_type)
                except (NoSuchBeanError, NoUniqueBeanError):
                    if has_default:
                        continue
                    raise NoSuchBeanError(
                        bean_type=param_type if isinstance(param_type, type) else None,
                        required_by=f"{reg.impl_type.__qualname__}.__init__()",
                        parameter=f"{param_name}: {getattr(param_type, '__name__', repr(param_type))}",
                    ) from None

            return reg.impl_type(**kwargs)
        finally:
            self._resolving.pop(reg.impl_type, None)

    def resolve_param(self, param_type: Any) -> Any:
        """Resolve a single injection point, handling ``T | None`` and ``list[T]``."""
        if get_origin(param_type) is Union or isinstance(param_type, types.UnionType):
            non_none = [a for a in get_args(param_type) if a is not type(None)]
            if len(non_none) == 1:
                return self.get_if_unique(non_none[0])

        if get_origin(param_type) is list:
            args = get_args(param_type)
            if args:
                return self.resolve_all(args[0])

        return self.resolve(param_type)
