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
"""Tests for Container registration and resolution."""

from typing import Protocol, runtime_checkable

import pytest

from rabbitfly.container import (
    BeanCurrentlyInCreationError,
    Container,
    NoSuchBeanError,
    NoUniqueBeanError,
    Scope,
    primary,
)


class Greeter:
    def greet(self) -> str:
        return "hello"


class UserService:
    def __init__(self, greeter: Greeter) -> None:
        self.greeter = greeter


class OptionalGreeterService:
    def __init__(self, greeter: Greeter | None) -> None:
        self.greeter = greeter


class Validator:
    pass


class EmailValidator(Validator):
    pass


class PhoneValidator(Validator):
    pass


class ValidationService:
    def __init__(self, validators: list[Validator]) -> None:
        self.validators = validators


class CircularB:
    def __init__(self, a: "CircularA") -> None:
        self.a = a


class CircularA:
    def __init__(self, b: CircularB) -> None:
        self.b = b


@runtime_checkable
class Encoder(Protocol):
    def encode(self, value: str) -> bytes: ...


@runtime_checkable
class Endpoint(Protocol):
    @property
    def host(self) -> str: ...


@runtime_checkable
class Named(Protocol):
    name: str


class NamedThing:
    name: str

    def __init__(self) -> None:
        self.name = "thing"


class Utf8Encoder:
    def encode(self, value: str) -> bytes:
        return value.encode()


class LocalEndpoint:
    @property
    def host(self) -> str:
        return "localhost"


class TestRegistration:
    def test_register_and_resolve(self):
        container = Container()
        container.register(Greeter)
        assert container.resolve(Greeter).greet() == "hello"

    def test_singleton_returns_same_instance(self):
        container = Container()
        container.register(Greeter)
        assert container.resolve(Greeter) is container.resolve(Greeter)

    def test_transient_returns_new_instances(self):
        container = Container()
        container.register(Greeter, scope=Scope.TRANSIENT)
        assert container.resolve(Greeter) is not container.resolve(Greeter)

    def test_register_instance(self):
        container = Container()
        greeter = Greeter()
        container.register_instance(Greeter, greeter)
        assert container.resolve(Greeter) is greeter

    def test_named_lookup(self):
        container = Container()
        container.register_instance(Greeter, Greeter(), name="greeter")
        assert container.contains("greeter")
        assert isinstance(container.resolve_by_name("greeter"), Greeter)

    def test_remove_drops_name(self):
        container = Container()
        container.register(Greeter, name="greeter")
        container.remove(Greeter)
        assert not container.contains("greeter")
        with pytest.raises(NoSuchBeanError):
            container.resolve(Greeter)


class TestInjection:
    def test_constructor_injection(self):
        container = Container()
        container.register(Greeter)
        container.register(UserService)
        assert isinstance(container.resolve(UserService).greeter, Greeter)

    def test_optional_injection_without_candidate(self):
        container = Container()
        container.register(OptionalGreeterService)
        assert container.resolve(OptionalGreeterService).greeter is None

    def test_optional_injection_with_candidate(self):
        container = Container()
        container.register(Greeter)
        container.register(OptionalGreeterService)
        assert isinstance(container.resolve(OptionalGreeterService).greeter, Greeter)

    def test_list_injection(self):
        container = Container()
        container.register(EmailValidator)
        container.register(PhoneValidator)
        container.register(ValidationService)
        validators = container.resolve(ValidationService).validators
        assert {type(v) for v in validators} == {EmailValidator, PhoneValidator}

    def test_missing_dependency_names_requirer(self):
        container = Container()
        container.register(UserService)
        with pytest.raises(NoSuchBeanError) as exc_info:
            container.resolve(UserService)
        assert exc_info.value.required_by == "UserService.__init__()"

    def test_circular_dependency_detected(self):
        container = Container()
        container.register(CircularA)
        container.register(CircularB)
        with pytest.raises(BeanCurrentlyInCreationError):
            container.resolve(CircularA)


class TestLookupByBaseType:
    def test_resolves_unique_subtype(self):
        container = Container()
        container.register(EmailValidator)
        assert isinstance(container.resolve(Validator), EmailValidator)

    def test_ambiguous_subtypes_raise(self):
        container = Container()
        container.register(EmailValidator)
        container.register(PhoneValidator)
        with pytest.raises(NoUniqueBeanError):
            container.resolve(Validator)

    def test_primary_breaks_tie(self):
        @primary
        class PreferredValidator(Validator):
            pass

        container = Container()
        container.register(EmailValidator)
        container.register(PreferredValidator)
        assert isinstance(container.resolve(Validator), PreferredValidator)

    def test_protocol_match_by_instance(self):
        container = Container()
        container.register_instance(Utf8Encoder, Utf8Encoder())
        assert isinstance(container.resolve(Encoder), Utf8Encoder)

    def test_protocol_with_properties_matches_instance(self):
        container = Container()
        endpoint = LocalEndpoint()
        container.register_instance(LocalEndpoint, endpoint)
        assert container.has_bean_of_type(Endpoint)
        assert container.resolve(Endpoint) is endpoint

    def test_protocol_with_properties_matches_class_registration(self):
        container = Container()
        container.register(LocalEndpoint)
        assert container.has_bean_of_type(Endpoint)
        assert isinstance(container.resolve(Endpoint), LocalEndpoint)

    def test_protocol_with_properties_rejects_unrelated_class(self):
        container = Container()
        container.register(Greeter)
        assert not container.has_bean_of_type(Endpoint)

    def test_protocol_data_member_matches_annotated_class(self):
        container = Container()
        container.register(NamedThing)
        assert container.has_bean_of_type(Named)

    def test_has_bean_of_type_exclude(self):
        container = Container()
        container.register(EmailValidator)
        assert container.has_bean_of_type(Validator)
        assert not container.has_bean_of_type(Validator, exclude=EmailValidator)


class TestGetIfUnique:
    def test_none_when_missing(self):
        assert Container().get_if_unique(Validator) is None

    def test_single_candidate(self):
        container = Container()
        container.register(EmailValidator)
        assert isinstance(container.get_if_unique(Validator), EmailValidator)

    def test_two_candidates_yield_none(self):
        container = Container()
        container.register(EmailValidator)
        container.register(PhoneValidator)
        assert container.get_if_unique(Validator) is None

    def test_primary_is_not_consulted(self):
        @primary
        class PreferredValidator(Validator):
            pass

        container = Container()
        container.register(EmailValidator)
        container.register(PreferredValidator)
        assert container.get_if_unique(Validator) is None
