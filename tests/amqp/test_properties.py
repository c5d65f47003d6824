"""Tests for RabbitProperties binding."""

import pytest
from pydantic import ValidationError

from rabbitfly.amqp.connection import CacheMode
from rabbitfly.amqp.listener import AcknowledgeMode
from rabbitfly.amqp.properties import RabbitProperties
from rabbitfly.core.config import Config
from rabbitfly.kernel.exceptions import ConfigurationError


def _bind(section: dict) -> RabbitProperties:
    return Config({"rabbitfly": {"rabbitmq": section}}).bind(RabbitProperties)


class TestDefaults:
    def test_defaults(self):
        props = _bind({})
        assert props.host == "localhost"
        assert props.port == 5672
        assert props.username is None
        assert props.password is None
        assert props.virtual_host is None
        assert props.addresses is None
        assert props.requested_heartbeat is None
        assert props.dynamic is True
        assert props.ssl.enabled is False
        assert props.cache.channel.size is None
        assert props.cache.connection.mode is None
        assert props.listener.auto_startup is True

    def test_frozen(self):
        props = _bind({})
        with pytest.raises(ValidationError):
            props.host = "other"  # type: ignore[misc]


class TestBinding:
    def test_kebab_case_keys(self):
        props = _bind({
            "virtual-host": "/orders",
            "requested-heartbeat": 30,
            "ssl": {"enabled": True, "key-store": "/tls/client.pem", "key-store-password": "pw"},
            "cache": {"channel": {"size": 50, "checkout-timeout": 1000}, "connection": {"mode": "connection", "size": 4}},
            "listener": {"acknowledge-mode": "manual", "prefetch": 10, "default-requeue-rejected": False},
        })
        assert props.virtual_host == "/orders"
        assert props.requested_heartbeat == 30
        assert props.ssl.key_store == "/tls/client.pem"
        assert props.ssl.key_store_password == "pw"
        assert props.cache.channel.size == 50
        assert props.cache.channel.checkout_timeout == 1000
        assert props.cache.connection.mode is CacheMode.CONNECTION
        assert props.cache.connection.size == 4
        assert props.listener.acknowledge_mode is AcknowledgeMode.MANUAL
        assert props.listener.prefetch == 10
        assert props.listener.default_requeue_rejected is False

    def test_string_values_are_coerced(self):
        props = _bind({"port": "5673", "dynamic": "false"})
        assert props.port == 5673
        assert props.dynamic is False

    def test_blank_strings_mean_unset(self):
        props = _bind({"host": "", "username": " ", "password": "", "virtual-host": ""})
        assert props.host is None
        assert props.username is None
        assert props.password is None
        assert props.virtual_host is None

    def test_password_not_in_repr(self):
        props = _bind({"password": "s3cret"})
        assert "s3cret" not in repr(props)

    def test_invalid_value_raises_configuration_error(self):
        with pytest.raises(ConfigurationError):
            _bind({"cache": {"channel": {"size": 0}}})

    def test_unknown_cache_mode_rejected(self):
        with pytest.raises(ConfigurationError):
            _bind({"cache": {"connection": {"mode": "POOLED"}}})


class TestDetermineAddresses:
    def test_explicit_addresses_win(self):
        props = _bind({"host": "ignored", "addresses": "rabbit-1:5672,rabbit-2:5673"})
        assert props.determine_addresses() == "rabbit-1:5672,rabbit-2:5673"

    def test_falls_back_to_host_and_port(self):
        assert _bind({"host": "broker", "port": 5673}).determine_addresses() == "broker:5673"

    def test_none_without_host(self):
        assert _bind({"host": ""}).determine_addresses() is None
