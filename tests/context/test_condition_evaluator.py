"""Tests for ConditionEvaluator."""

from rabbitfly.container.container import Container
from rabbitfly.context.condition_evaluator import ConditionEvaluator
from rabbitfly.context.conditions import (
    conditional_on_bean,
    conditional_on_class,
    conditional_on_missing_bean,
    conditional_on_property,
)
from rabbitfly.core.config import Config


class Store:
    pass


def _evaluator(data: dict | None = None, container: Container | None = None) -> ConditionEvaluator:
    return ConditionEvaluator(Config(data or {}), container or Container())


class TestOnProperty:
    def test_missing_without_match_if_missing(self):
        @conditional_on_property("feature.enabled")
        class Bean:
            pass

        assert _evaluator().should_include(Bean) is False

    def test_missing_with_match_if_missing(self):
        @conditional_on_property("feature.enabled", having_value="true", match_if_missing=True)
        class Bean:
            pass

        assert _evaluator().should_include(Bean) is True

    def test_having_value_is_case_insensitive(self):
        @conditional_on_property("feature.enabled", having_value="true")
        class Bean:
            pass

        assert _evaluator({"feature": {"enabled": True}}).should_include(Bean) is True
        assert _evaluator({"feature": {"enabled": "TRUE"}}).should_include(Bean) is True
        assert _evaluator({"feature": {"enabled": False}}).should_include(Bean) is False

    def test_any_value_but_false(self):
        @conditional_on_property("feature.mode")
        class Bean:
            pass

        assert _evaluator({"feature": {"mode": "fast"}}).should_include(Bean) is True
        assert _evaluator({"feature": {"mode": "false"}}).should_include(Bean) is False


class TestOnClass:
    def test_unavailable_module_excludes(self):
        @conditional_on_class("nonexistent_xyz_module_12345")
        class Bean:
            pass

        assert _evaluator().should_include(Bean) is False


class TestTwoPass:
    def test_bean_conditions_skipped_in_first_pass(self):
        @conditional_on_bean(Store)
        class NeedsStore:
            pass

        evaluator = _evaluator()
        assert evaluator.should_include(NeedsStore, bean_pass=False) is True
        assert evaluator.should_include(NeedsStore, bean_pass=True) is False

    def test_property_conditions_skipped_in_second_pass(self):
        @conditional_on_property("missing.key")
        class Bean:
            pass

        assert _evaluator().should_include(Bean, bean_pass=True) is True

    def test_missing_bean_ignores_itself(self):
        @conditional_on_missing_bean(Store)
        class FallbackStore(Store):
            pass

        container = Container()
        container.register(FallbackStore)
        evaluator = _evaluator(container=container)
        assert evaluator.should_include(FallbackStore, bean_pass=True) is True


class TestMethodConditions:
    def test_should_invoke_sees_current_registrations(self):
        @conditional_on_missing_bean(Store)
        def store_factory() -> Store:
            return Store()

        container = Container()
        evaluator = _evaluator(container=container)
        assert evaluator.should_invoke(store_factory) is True

        container.register_instance(Store, Store())
        assert evaluator.should_invoke(store_factory) is False
        assert evaluator.failed_condition(store_factory)["type"] == "on_missing_bean"

    def test_failed_condition_none_when_all_hold(self):
        def factory() -> Store:
            return Store()

        assert _evaluator().failed_condition(factory) is None
