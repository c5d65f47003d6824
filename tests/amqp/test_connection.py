"""Tests for connection parameters and CachingConnectionFactory."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import certifi
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from rabbitfly.amqp.connection import (
    Address,
    CacheMode,
    CachingConnectionFactory,
    ConnectionFactory,
    ConnectionParameters,
    RabbitConnectionFactoryBean,
    parse_addresses,
)
from rabbitfly.kernel.exceptions import (
    AmqpConnectException,
    AmqpTimeoutException,
    ConfigurationError,
)


_PASSPHRASE = b"s3cret"


def _tls_material(directory: Path) -> SimpleNamespace:
    """A self-signed certificate with plain and passphrase-protected key stores."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "rabbitfly-client")])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    cert_pem = cert.public_bytes(serialization.Encoding.PEM)
    plain_key = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    encrypted_key = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.BestAvailableEncryption(_PASSPHRASE),
    )

    material = SimpleNamespace(
        trust_store=directory / "ca.pem",
        key_store=directory / "client.pem",
        encrypted_key_store=directory / "client-encrypted.pem",
    )
    material.trust_store.write_bytes(cert_pem)
    material.key_store.write_bytes(cert_pem + plain_key)
    material.encrypted_key_store.write_bytes(cert_pem + encrypted_key)
    return material


def _tls_factory_bean(**settings) -> RabbitConnectionFactoryBean:
    factory_bean = RabbitConnectionFactoryBean()
    factory_bean.use_ssl = True
    for name, value in settings.items():
        setattr(factory_bean, name, value)
    return factory_bean


def _connection() -> MagicMock:
    connection = MagicMock()
    connection.is_closed = False
    connection.close = AsyncMock()
    connection.channel = AsyncMock(side_effect=lambda: AsyncMock())
    return connection


class TestParseAddresses:
    def test_host_and_port(self):
        assert parse_addresses("rabbit-1:5673, rabbit-2") == [Address("rabbit-1", 5673), Address("rabbit-2", 5672)]

    def test_uri_parts_are_stripped(self):
        assert parse_addresses("amqp://user:pw@rabbit-1:5680/vhost") == [Address("rabbit-1", 5680)]

    def test_amqps_default_port(self):
        assert parse_addresses("amqps://rabbit-1") == [Address("rabbit-1", 5671)]

    def test_empty(self):
        assert parse_addresses("") == []
        assert parse_addresses(None) == []

    def test_bad_port(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_addresses("rabbit-1:abc")
        assert exc_info.value.code == "CONFIG_ADDRESS"


class TestRabbitConnectionFactoryBean:
    def test_library_defaults(self):
        params = RabbitConnectionFactoryBean().get_object()
        assert params == ConnectionParameters()
        assert params.host == "localhost"
        assert params.port == 5672
        assert params.username == "guest"
        assert params.virtual_host == "/"
        assert params.requested_heartbeat == 60
        assert params.use_ssl is False

    def test_password_not_in_repr(self):
        factory_bean = RabbitConnectionFactoryBean()
        factory_bean.password = "s3cret"
        factory_bean.after_properties_set()
        assert "s3cret" not in repr(factory_bean.get_object())

    def test_tls_with_trust_store(self):
        factory_bean = RabbitConnectionFactoryBean()
        factory_bean.use_ssl = True
        factory_bean.trust_store = certifi.where()
        factory_bean.after_properties_set()
        params = factory_bean.get_object()
        assert params.use_ssl is True
        assert params.ssl_context is not None

    def test_missing_trust_store(self, tmp_path):
        factory_bean = RabbitConnectionFactoryBean()
        factory_bean.use_ssl = True
        factory_bean.trust_store = str(tmp_path / "missing.pem")
        with pytest.raises(ConfigurationError) as exc_info:
            factory_bean.after_properties_set()
        assert exc_info.value.code == "CONFIG_SSL"

    def test_unreadable_key_store(self, tmp_path):
        key_store = tmp_path / "client.pem"
        key_store.write_text("not a certificate")
        factory_bean = RabbitConnectionFactoryBean()
        factory_bean.use_ssl = True
        factory_bean.key_store = str(key_store)
        with pytest.raises(ConfigurationError):
            factory_bean.after_properties_set()


    def test_key_store_without_passphrase(self, tmp_path):
        material = _tls_material(tmp_path)
        factory_bean = _tls_factory_bean(key_store=str(material.key_store), trust_store=str(material.trust_store))
        factory_bean.after_properties_set()
        assert CachingConnectionFactory(factory_bean.get_object()).is_ssl

    def test_encrypted_key_store_with_passphrase(self, tmp_path):
        material = _tls_material(tmp_path)
        factory_bean = _tls_factory_bean(
            key_store=str(material.encrypted_key_store),
            key_store_passphrase=_PASSPHRASE.decode(),
            trust_store=str(material.trust_store),
        )
        factory_bean.after_properties_set()
        params = factory_bean.get_object()
        assert params.use_ssl is True
        assert params.ssl_context is not None

    def test_wrong_passphrase(self, tmp_path):
        material = _tls_material(tmp_path)
        factory_bean = _tls_factory_bean(
            key_store=str(material.encrypted_key_store),
            key_store_passphrase="not-the-passphrase",
        )
        with pytest.raises(ConfigurationError) as exc_info:
            factory_bean.after_properties_set()
        assert exc_info.value.code == "CONFIG_SSL"

    def test_get_object_returns_built_parameters(self):
        factory_bean = RabbitConnectionFactoryBean()
        factory_bean.host = "broker"
        factory_bean.after_properties_set()
        assert factory_bean.get_object() is factory_bean.get_object()
        assert factory_bean.get_object().host == "broker"


class TestCachingConnectionFactorySettings:
    def test_protocol_compliance(self):
        assert isinstance(CachingConnectionFactory(), ConnectionFactory)

    def test_cache_defaults(self):
        factory = CachingConnectionFactory()
        assert factory.channel_cache_size == 25
        assert factory.cache_mode is CacheMode.CHANNEL
        assert factory.connection_cache_size == 1
        assert factory.channel_checkout_timeout == 0

    def test_invalid_sizes_rejected(self):
        factory = CachingConnectionFactory()
        with pytest.raises(ValueError):
            factory.channel_cache_size = 0
        with pytest.raises(ValueError):
            factory.connection_cache_size = 0
        with pytest.raises(ValueError):
            factory.channel_checkout_timeout = -1

    def test_addresses_default_to_parameters(self):
        factory = CachingConnectionFactory(ConnectionParameters(host="broker", port=5673))
        assert factory.addresses == [Address("broker", 5673)]
        assert factory.host == "broker"

    def test_set_addresses_overrides_host(self):
        factory = CachingConnectionFactory()
        factory.set_addresses("rabbit-1:5680,rabbit-2:5681")
        assert factory.host == "rabbit-1"
        assert factory.port == 5680
        assert len(factory.addresses) == 2


class TestCachingConnectionFactoryConnect:
    @pytest.mark.asyncio
    async def test_fails_over_to_next_address(self):
        connection = _connection()
        connect = AsyncMock(side_effect=[OSError("refused"), connection])
        factory = CachingConnectionFactory(ConnectionParameters(username="app", password="pw", virtual_host="/orders"))
        factory.set_addresses("rabbit-1:5672,rabbit-2:5672")
        listener = AsyncMock()
        factory.add_connection_listener(listener)

        with patch("aio_pika.connect_robust", connect):
            assert await factory.create_connection() is connection

        assert connect.await_count == 2
        kwargs = connect.await_args.kwargs
        assert kwargs["host"] == "rabbit-2"
        assert kwargs["login"] == "app"
        assert kwargs["virtualhost"] == "/orders"
        assert kwargs["heartbeat"] == 60
        assert kwargs["ssl"] is False
        listener.assert_awaited_once_with(connection)

    @pytest.mark.asyncio
    async def test_all_addresses_unreachable(self):
        connect = AsyncMock(side_effect=OSError("refused"))
        factory = CachingConnectionFactory()
        with patch("aio_pika.connect_robust", connect):
            with pytest.raises(AmqpConnectException) as exc_info:
                await factory.create_connection()
        assert isinstance(exc_info.value.__cause__, OSError)

    @pytest.mark.asyncio
    async def test_channel_mode_shares_one_connection(self):
        connection = _connection()
        connect = AsyncMock(return_value=connection)
        factory = CachingConnectionFactory()
        with patch("aio_pika.connect_robust", connect):
            async with factory.channel() as first:
                pass
            async with factory.channel() as second:
                pass
            await factory.create_connection()
        assert connect.await_count == 1
        assert first is second  # returned to the cache and reused

    @pytest.mark.asyncio
    async def test_checkout_timeout(self):
        connect = AsyncMock(return_value=_connection())
        factory = CachingConnectionFactory()
        factory.channel_cache_size = 1
        factory.channel_checkout_timeout = 20
        with patch("aio_pika.connect_robust", connect):
            async with factory.channel():
                with pytest.raises(AmqpTimeoutException):
                    async with factory.channel():
                        pass

    @pytest.mark.asyncio
    async def test_connection_mode_opens_dedicated_connections(self):
        connect = AsyncMock(side_effect=lambda **kwargs: _connection())
        factory = CachingConnectionFactory()
        factory.cache_mode = CacheMode.CONNECTION
        with patch("aio_pika.connect_robust", connect):
            first = await factory.create_connection()
            second = await factory.create_connection()
        assert first is not second
        await factory.destroy()
        first.close.assert_awaited_once()
        second.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_destroy_closes_channels_and_connection(self):
        connection = _connection()
        factory = CachingConnectionFactory()
        with patch("aio_pika.connect_robust", AsyncMock(return_value=connection)):
            async with factory.channel() as channel:
                pass
        await factory.destroy()
        channel.close.assert_awaited()
        connection.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failing_listener_closes_connection(self):
        connections = [_connection(), _connection()]
        factory = CachingConnectionFactory()
        factory.add_connection_listener(AsyncMock(side_effect=RuntimeError("declare failed")))
        with patch("aio_pika.connect_robust", AsyncMock(side_effect=connections)):
            for _ in connections:
                with pytest.raises(RuntimeError):
                    await factory.create_connection()
        await factory.destroy()
        for connection in connections:
            connection.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reconnect_drops_stale_channel_pool(self):
        first, second = _connection(), _connection()
        factory = CachingConnectionFactory()
        with patch("aio_pika.connect_robust", AsyncMock(side_effect=[first, second])):
            async with factory.channel():
                pass
            first.is_closed = True
            async with factory.channel():
                pass
        assert id(first) not in factory._channel_pools
        assert id(second) in factory._channel_pools
