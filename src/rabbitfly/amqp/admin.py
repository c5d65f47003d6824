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
"""Broker administration — declare and remove exchanges, queues and bindings."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol, runtime_checkable

import structlog

from rabbitfly.amqp.connection import ConnectionFactory
from rabbitfly.amqp.core import Binding, Declarables, Exchange, Queue

logger = structlog.get_logger("rabbitfly.amqp.admin")


@runtime_checkable
class AmqpAdmin(Protocol):
    """Topology management operations."""

    async def declare_exchange(self, exchange: Exchange) -> None: ...

    async def declare_queue(self, queue: Queue) -> str: ...

    async def declare_binding(self, binding: Binding) -> None: ...

    async def delete_exchange(self, name: str) -> None: ...

    async def delete_queue(self, name: str) -> None: ...

    async def purge_queue(self, name: str) -> int: ...


class RabbitAdmin:
    """AmqpAdmin backed by a ConnectionFactory.

    Every operation borrows a cached channel from the factory. With
    ``auto_startup`` on, the admin also registers itself as a connection
    listener and re-declares its ``declarables`` on each new connection,
    so topology survives broker restarts. The factory is borrowed, not owned.
    """

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        declarables: Iterable[Declarables] | None = None,
        *,
        auto_startup: bool = True,
    ) -> None:
        self._connection_factory = connection_factory
        self._declarables = list(declarables or [])
        self._auto_startup = auto_startup
        if auto_startup:
            connection_factory.add_connection_listener(self._on_connection)

    @property
    def connection_factory(self) -> ConnectionFactory:
        return self._connection_factory

    @property
    def auto_startup(self) -> bool:
        return self._auto_startup

    @property
    def declarables(self) -> list[Declarables]:
        return list(self._declarables)

    async def declare_exchange(self, exchange: Exchange) -> None:
        async with self._connection_factory.channel() as channel:
            await self._declare_exchange(channel, exchange)

    async def declare_queue(self, queue: Queue) -> str:
        """Declare *queue* and return its name (server-generated when blank)."""
        async with self._connection_factory.channel() as channel:
            declared = await self._declare_queue(channel, queue)
        return declared.name

    async def declare_binding(self, binding: Binding) -> None:
        async with self._connection_factory.channel() as channel:
            await self._declare_binding(channel, binding)

    async def delete_exchange(self, name: str) -> None:
        async with self._connection_factory.channel() as channel:
            await channel.exchange_delete(name)
        logger.info("exchange_deleted", exchange=name)

    async def delete_queue(self, name: str) -> None:
        async with self._connection_factory.channel() as channel:
            await channel.queue_delete(name)
        logger.info("queue_deleted", queue=name)

    async def purge_queue(self, name: str) -> int:
        """Remove every ready message from *name*; returns how many were dropped."""
        async with self._connection_factory.channel() as channel:
            queue = await channel.get_queue(name, ensure=False)
            result = await queue.purge()
        count = getattr(result, "message_count", 0) or 0
        logger.info("queue_purged", queue=name, messages=count)
        return count

    async def initialize(self, channel: Any) -> None:
        """Declare every exchange, then every queue, then every binding."""
        exchanges = [e for group in self._declarables for e in group.exchanges]
        queues = [q for group in self._declarables for q in group.queues]
        bindings = [b for group in self._declarables for b in group.bindings]
        for exchange in exchanges:
            await self._declare_exchange(channel, exchange)
        for queue in queues:
            await self._declare_queue(channel, queue)
        for binding in bindings:
            await self._declare_binding(channel, binding)
        logger.info(
            "declarables_initialized",
            exchanges=len(exchanges),
            queues=len(queues),
            bindings=len(bindings),
        )

    async def _on_connection(self, connection: Any) -> None:
        if not self._declarables:
            return
        # A dedicated channel; the factory may still hold its connect lock here
        channel = await connection.channel()
        try:
            await self.initialize(channel)
        finally:
            await channel.close()

    @staticmethod
    async def _declare_exchange(channel: Any, exchange: Exchange) -> None:
        if not exchange.name:
            return  # the default exchange always exists
        await channel.declare_exchange(
            exchange.name,
            type=exchange.type.value,
            durable=exchange.durable,
            auto_delete=exchange.auto_delete,
            arguments=exchange.arguments or None,
        )
        logger.debug("exchange_declared", exchange=exchange.name, type=exchange.type.value)

    @staticmethod
    async def _declare_queue(channel: Any, queue: Queue) -> Any:
        declared = await channel.declare_queue(
            queue.name or None,
            durable=queue.durable,
            exclusive=queue.exclusive,
            auto_delete=queue.auto_delete,
            arguments=queue.arguments or None,
        )
        logger.debug("queue_declared", queue=declared.name)
        return declared

    @staticmethod
    async def _declare_binding(channel: Any, binding: Binding) -> None:
        queue = await channel.get_queue(binding.queue, ensure=False)
        await queue.bind(
            binding.exchange,
            routing_key=binding.routing_key,
            arguments=binding.arguments or None,
        )
        logger.debug(
            "binding_declared",
            queue=binding.queue,
            exchange=binding.exchange,
            routing_key=binding.routing_key,
        )
