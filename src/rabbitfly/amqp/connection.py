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
"""Connection factories — wrap aio-pika connections with channel caching.

Requires aio-pika at connection time only; building and configuring a
factory never touches the network.
"""

from __future__ import annotations

import asyncio
import contextlib
import ssl
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

import structlog

from rabbitfly.context.lifecycle import pre_destroy
from rabbitfly.kernel.exceptions import (
    AmqpConnectException,
    AmqpTimeoutException,
    ConfigurationError,
)

logger = structlog.get_logger("rabbitfly.amqp.connection")

DEFAULT_PORT = 5672
DEFAULT_TLS_PORT = 5671

ConnectionListener = Callable[[Any], Awaitable[None]]


class CacheMode(str, Enum):
    """What a CachingConnectionFactory caches."""

    CHANNEL = "CHANNEL"
    """One shared connection; channels are cached."""

    CONNECTION = "CONNECTION"
    """Connections are cached, each with its own channel cache."""


@dataclass(frozen=True)
class Address:
    """A single broker endpoint."""

    host: str
    port: int = DEFAULT_PORT

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


def parse_addresses(value: str | None) -> list[Address]:
    """Parse a comma-separated address list.

    Entries may be ``host``, ``host:port`` or a full
    ``amqp[s]://user:pass@host:port/vhost`` URI; only host and port are kept.
    """
    addresses: list[Address] = []
    for raw in (value or "").split(","):
        entry = raw.strip()
        if not entry:
            continue
        default_port = DEFAULT_PORT
        if "://" in entry:
            scheme, entry = entry.split("://", 1)
            if scheme.lower() == "amqps":
                default_port = DEFAULT_TLS_PORT
        entry = entry.rsplit("@", 1)[-1].split("/", 1)[0]
        host, sep, port = entry.rpartition(":")
        if not sep:
            addresses.append(Address(entry, default_port))
            continue
        try:
            addresses.append(Address(host, int(port)))
        except ValueError as exc:
            raise ConfigurationError(
                f"Invalid port in broker address '{raw.strip()}'",
                code="CONFIG_ADDRESS",
                context={"address": raw.strip()},
            ) from exc
    return addresses


# =============================================================================
# Transport parameters
# =============================================================================


@dataclass(frozen=True)
class ConnectionParameters:
    """Resolved transport settings handed to aio-pika."""

    host: str = "localhost"
    port: int = DEFAULT_PORT
    username: str = "guest"
    password: str = field(default="guest", repr=False)
    virtual_host: str = "/"
    requested_heartbeat: int = 60
    ssl_context: ssl.SSLContext | None = field(default=None, repr=False)

    @property
    def use_ssl(self) -> bool:
        return self.ssl_context is not None


class RabbitConnectionFactoryBean:
    """Collects transport settings and validates them into ConnectionParameters.

    Attributes start at the client library defaults; callers overwrite only
    what they have configured, then call :meth:`after_properties_set`. TLS
    material is loaded eagerly there so unreadable files fail at startup
    rather than on first connect.
    """

    def __init__(self) -> None:
        defaults = ConnectionParameters()
        self.host: str = defaults.host
        self.port: int = defaults.port
        self.username: str = defaults.username
        self.password: str = defaults.password
        self.virtual_host: str = defaults.virtual_host
        self.requested_heartbeat: int = defaults.requested_heartbeat
        self.use_ssl: bool = False
        self.key_store: str | None = None
        self.key_store_passphrase: str | None = None
        self.trust_store: str | None = None
        self.trust_store_passphrase: str | None = None
        self._parameters: ConnectionParameters | None = None

    def after_properties_set(self) -> None:
        """Validate settings and build the TLS context when enabled.

        Raises:
            ConfigurationError: if a key store or trust store cannot be read
                or the key store passphrase is wrong.
        """
        self._parameters = self._build_parameters()

    def get_object(self) -> ConnectionParameters:
        if self._parameters is None:
            self._parameters = self._build_parameters()
        return self._parameters

    def _build_parameters(self) -> ConnectionParameters:
        ssl_context = self._create_ssl_context() if self.use_ssl else None
        return ConnectionParameters(
            host=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            virtual_host=self.virtual_host,
            requested_heartbeat=self.requested_heartbeat,
            ssl_context=ssl_context,
        )

    def _create_ssl_context(self) -> ssl.SSLContext:
        try:
            # No trust store means the platform's default CA set
            ctx = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cafile=self.trust_store)
            if self.key_store:
                ctx.load_cert_chain(certfile=self.key_store, password=self.key_store_passphrase)
        except (OSError, ValueError) as exc:
            raise ConfigurationError(
                f"Unable to load TLS material: {exc}",
                code="CONFIG_SSL",
                context={"key_store": self.key_store, "trust_store": self.trust_store},
            ) from exc
        logger.debug(
            "ssl_context_created",
            key_store=self.key_store,
            trust_store=self.trust_store,
        )
        return ctx


# =============================================================================
# ConnectionFactory port
# =============================================================================


@runtime_checkable
class ConnectionFactory(Protocol):
    """Owns broker connections and hands out channels."""

    @property
    def host(self) -> str: ...

    @property
    def port(self) -> int: ...

    @property
    def virtual_host(self) -> str: ...

    @property
    def username(self) -> str: ...

    async def create_connection(self) -> Any: ...

    def channel(self) -> contextlib.AbstractAsyncContextManager[Any]: ...

    def add_connection_listener(self, listener: ConnectionListener) -> None: ...

    async def destroy(self) -> None: ...


class CachingConnectionFactory:
    """ConnectionFactory backed by aio-pika robust connections.

    In ``CHANNEL`` mode a single connection is shared and up to
    ``channel_cache_size`` channels are pooled on it. In ``CONNECTION`` mode
    up to ``connection_cache_size`` connections are pooled, each with its own
    channel pool. A positive ``channel_checkout_timeout`` (milliseconds)
    bounds how long ``channel()`` waits for a free pooled channel.

    Connections are opened lazily. When several addresses are configured they
    are tried in order and the first reachable one wins.
    """

    DEFAULT_CHANNEL_CACHE_SIZE = 25

    def __init__(self, parameters: ConnectionParameters | None = None) -> None:
        self._parameters = parameters or ConnectionParameters()
        self._addresses: list[Address] = []
        self._channel_cache_size = self.DEFAULT_CHANNEL_CACHE_SIZE
        self._cache_mode = CacheMode.CHANNEL
        self._connection_cache_size = 1
        self._channel_checkout_timeout = 0
        self._connection_listeners: list[ConnectionListener] = []

        self._lock = asyncio.Lock()
        self._connection: Any = None
        self._connection_pool: Any = None
        self._channel_pools: dict[int, Any] = {}
        self._dedicated: list[Any] = []

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def parameters(self) -> ConnectionParameters:
        return self._parameters

    @property
    def host(self) -> str:
        return self._addresses[0].host if self._addresses else self._parameters.host

    @property
    def port(self) -> int:
        return self._addresses[0].port if self._addresses else self._parameters.port

    @property
    def virtual_host(self) -> str:
        return self._parameters.virtual_host

    @property
    def username(self) -> str:
        return self._parameters.username

    @property
    def requested_heartbeat(self) -> int:
        return self._parameters.requested_heartbeat

    @property
    def is_ssl(self) -> bool:
        return self._parameters.use_ssl

    @property
    def addresses(self) -> list[Address]:
        if self._addresses:
            return list(self._addresses)
        return [Address(self._parameters.host, self._parameters.port)]

    def set_addresses(self, addresses: str) -> None:
        """Replace host/port with an ordered failover list."""
        parsed = parse_addresses(addresses)
        if parsed:
            self._addresses = parsed

    @property
    def channel_cache_size(self) -> int:
        return self._channel_cache_size

    @channel_cache_size.setter
    def channel_cache_size(self, size: int) -> None:
        if size < 1:
            raise ValueError("Channel cache size must be 1 or higher")
        self._channel_cache_size = size

    @property
    def cache_mode(self) -> CacheMode:
        return self._cache_mode

    @cache_mode.setter
    def cache_mode(self, mode: CacheMode) -> None:
        self._cache_mode = CacheMode(mode)

    @property
    def connection_cache_size(self) -> int:
        return self._connection_cache_size

    @connection_cache_size.setter
    def connection_cache_size(self, size: int) -> None:
        if size < 1:
            raise ValueError("Connection cache size must be 1 or higher")
        self._connection_cache_size = size

    @property
    def channel_checkout_timeout(self) -> int:
        """Milliseconds to wait for a pooled channel; 0 waits indefinitely."""
        return self._channel_checkout_timeout

    @channel_checkout_timeout.setter
    def channel_checkout_timeout(self, timeout_ms: int) -> None:
        if timeout_ms < 0:
            raise ValueError("Channel checkout timeout must not be negative")
        self._channel_checkout_timeout = timeout_ms

    def add_connection_listener(self, listener: ConnectionListener) -> None:
        """Register a coroutine called with every newly opened connection."""
        self._connection_listeners.append(listener)

    # ------------------------------------------------------------------
    # Connections and channels
    # ------------------------------------------------------------------

    async def create_connection(self) -> Any:
        """Return a connection.

        ``CHANNEL`` mode returns the shared connection. ``CONNECTION`` mode
        opens a dedicated connection owned by the factory until destroy().
        """
        if self._cache_mode is CacheMode.CHANNEL:
            return await self._shared_connection()
        connection = await self._connect()
        self._dedicated.append(connection)
        return connection

    @contextlib.asynccontextmanager
    async def channel(self) -> AsyncIterator[Any]:
        """Check out a cached channel for the duration of the block."""
        async with contextlib.AsyncExitStack() as stack:
            if self._cache_mode is CacheMode.CHANNEL:
                connection = await self._shared_connection()
            else:
                pool = await self._get_connection_pool()
                connection = await self._checkout(stack, pool)
            channel_pool = self._channel_pool_for(connection)
            yield await self._checkout(stack, channel_pool)

    async def _checkout(self, stack: contextlib.AsyncExitStack, pool: Any) -> Any:
        acquire = stack.enter_async_context(pool.acquire())
        if not self._channel_checkout_timeout:
            return await acquire
        try:
            return await asyncio.wait_for(acquire, self._channel_checkout_timeout / 1000)
        except asyncio.TimeoutError as exc:
            raise AmqpTimeoutException(
                f"No cached channel available within {self._channel_checkout_timeout} ms",
                code="AMQP_CHECKOUT_TIMEOUT",
            ) from exc

    async def _shared_connection(self) -> Any:
        async with self._lock:
            if self._connection is None or self._connection.is_closed:
                if self._connection is not None:
                    # channels of a dead connection are not reusable
                    self._channel_pools.pop(id(self._connection), None)
                self._connection = await self._connect()
            return self._connection

    async def _get_connection_pool(self) -> Any:
        from aio_pika.pool import Pool

        async with self._lock:
            if self._connection_pool is None:
                self._connection_pool = Pool(self._connect, max_size=self._connection_cache_size)
            return self._connection_pool

    def _channel_pool_for(self, connection: Any) -> Any:
        from aio_pika.pool import Pool

        key = id(connection)
        pool = self._channel_pools.get(key)
        if pool is None:
            pool = Pool(connection.channel, max_size=self._channel_cache_size)
            self._channel_pools[key] = pool
        return pool

    async def _connect(self) -> Any:
        import aio_pika
        from aio_pika.exceptions import AMQPConnectionError

        params = self._parameters
        last_error: Exception | None = None
        for address in self.addresses:
            try:
                connection = await aio_pika.connect_robust(
                    host=address.host,
                    port=address.port,
                    login=params.username,
                    password=params.password,
                    virtualhost=params.virtual_host,
                    ssl=params.use_ssl,
                    ssl_context=params.ssl_context,
                    heartbeat=params.requested_heartbeat,
                )
            except (OSError, AMQPConnectionError) as exc:
                logger.warning("connection_failed", address=str(address), error=str(exc))
                last_error = exc
                continue

            logger.info(
                "connection_opened",
                address=str(address),
                virtual_host=params.virtual_host,
                ssl=params.use_ssl,
            )
            try:
                for listener in self._connection_listeners:
                    await listener(connection)
            except BaseException:
                await connection.close()
                raise
            return connection

        raise AmqpConnectException(
            f"Unable to connect to any of {[str(a) for a in self.addresses]}",
            code="AMQP_CONNECT",
            context={"addresses": [str(a) for a in self.addresses]},
        ) from last_error

    @pre_destroy
    async def destroy(self) -> None:
        """Close every pooled channel and connection."""
        for pool in list(self._channel_pools.values()):
            await pool.close()
        self._channel_pools.clear()

        if self._connection_pool is not None:
            await self._connection_pool.close()
            self._connection_pool = None

        for connection in [self._connection, *self._dedicated]:
            if connection is not None and not connection.is_closed:
                await connection.close()
        self._connection = None
        self._dedicated.clear()
        logger.info("connection_factory_destroyed")

    def __repr__(self) -> str:
        addresses = ",".join(str(a) for a in self.addresses)
        return f"CachingConnectionFactory [{addresses}/{self.virtual_host}, mode={self._cache_mode.value}]"
