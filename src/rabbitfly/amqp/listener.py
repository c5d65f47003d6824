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
"""Annotation-driven message listeners.

Mark coroutine methods of any bean with ``@rabbit_listener("queue")``; the
annotation post processor registers them as endpoints and the endpoint
registry starts one listener container per endpoint when the context starts.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

import structlog

from rabbitfly.amqp.connection import ConnectionFactory
from rabbitfly.amqp.converter import MessageConverter, SimpleMessageConverter
from rabbitfly.amqp.template import from_amqp_message

logger = structlog.get_logger("rabbitfly.amqp.listener")

F = TypeVar("F", bound=Callable[..., Any])

DEFAULT_PREFETCH = 250


class AcknowledgeMode(str, Enum):
    AUTO = "AUTO"
    """Ack after the handler returns, reject when it raises."""

    MANUAL = "MANUAL"
    """The handler receives the raw delivery and settles it itself."""

    NONE = "NONE"
    """The broker considers deliveries acknowledged on send."""


def rabbit_listener(*queues: str, id: str = "") -> Callable[[F], F]:
    """Mark a coroutine method as a consumer of the given queues."""
    if not queues:
        raise ValueError("@rabbit_listener needs at least one queue")

    def decorator(func: F) -> F:
        func.__rabbitfly_rabbit_listener__ = True  # type: ignore[attr-defined]
        func.__rabbitfly_listener_queues__ = queues  # type: ignore[attr-defined]
        func.__rabbitfly_listener_id__ = id  # type: ignore[attr-defined]
        return func

    return decorator


@dataclass(frozen=True)
class RabbitListenerEndpoint:
    id: str
    queues: tuple[str, ...]
    handler: Callable[[Any], Awaitable[Any]]


class MessageListenerContainer:
    """Consumes an endpoint's queues and dispatches deliveries to its handler.

    Opens ``concurrency`` channels, each with QoS ``prefetch`` and one
    consumer per queue.
    """

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        endpoint: RabbitListenerEndpoint,
        *,
        acknowledge_mode: AcknowledgeMode = AcknowledgeMode.AUTO,
        concurrency: int = 1,
        prefetch: int = DEFAULT_PREFETCH,
        default_requeue_rejected: bool = True,
        message_converter: MessageConverter | None = None,
    ) -> None:
        self._connection_factory = connection_factory
        self._endpoint = endpoint
        self.acknowledge_mode = acknowledge_mode
        self.concurrency = concurrency
        self.prefetch = prefetch
        self.default_requeue_rejected = default_requeue_rejected
        self.message_converter = message_converter or SimpleMessageConverter()
        self._channels: list[Any] = []
        self._consumers: list[tuple[Any, str]] = []
        self._running = False

    @property
    def endpoint(self) -> RabbitListenerEndpoint:
        return self._endpoint

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        connection = await self._connection_factory.create_connection()
        no_ack = self.acknowledge_mode is AcknowledgeMode.NONE
        try:
            for _ in range(self.concurrency):
                channel = await connection.channel()
                self._channels.append(channel)
                await channel.set_qos(prefetch_count=self.prefetch)
                for queue_name in self._endpoint.queues:
                    queue = await channel.get_queue(queue_name, ensure=False)
                    tag = await queue.consume(self._on_message, no_ack=no_ack)
                    self._consumers.append((queue, tag))
        except BaseException:
            await self._release()
            raise
        self._running = True
        logger.info(
            "listener_started",
            listener=self._endpoint.id,
            queues=list(self._endpoint.queues),
            concurrency=self.concurrency,
            acknowledge_mode=self.acknowledge_mode.value,
        )

    async def stop(self) -> None:
        if not self._running:
            return
        await self._release()
        self._running = False
        logger.info("listener_stopped", listener=self._endpoint.id)

    async def _release(self) -> None:
        """Cancel consumers and close channels opened so far."""
        for queue, tag in self._consumers:
            await queue.cancel(tag)
        self._consumers.clear()
        for channel in self._channels:
            if not channel.is_closed:
                await channel.close()
        self._channels.clear()

    async def _on_message(self, incoming: Any) -> None:
        if self.acknowledge_mode is AcknowledgeMode.MANUAL:
            await self._invoke(incoming)
            return

        try:
            payload = self.message_converter.from_message(from_amqp_message(incoming))
            await self._endpoint.handler(payload)
        except Exception as exc:
            logger.error(
                "listener_failed",
                listener=self._endpoint.id,
                routing_key=incoming.routing_key,
                error=str(exc),
                exc_info=exc,
            )
            if self.acknowledge_mode is AcknowledgeMode.AUTO:
                await incoming.reject(requeue=self.default_requeue_rejected)
            return

        if self.acknowledge_mode is AcknowledgeMode.AUTO:
            await incoming.ack()

    async def _invoke(self, incoming: Any) -> None:
        try:
            await self._endpoint.handler(incoming)
        except Exception as exc:
            logger.error("listener_failed", listener=self._endpoint.id, error=str(exc), exc_info=exc)


class SimpleRabbitListenerContainerFactory:
    """Creates listener containers; unset settings fall back to container defaults."""

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        self.connection_factory = connection_factory
        self.acknowledge_mode: AcknowledgeMode | None = None
        self.concurrency: int | None = None
        self.prefetch: int | None = None
        self.default_requeue_rejected: bool | None = None
        self.message_converter: MessageConverter | None = None

    def create_container(self, endpoint: RabbitListenerEndpoint) -> MessageListenerContainer:
        container = MessageListenerContainer(
            self.connection_factory,
            endpoint,
            message_converter=self.message_converter,
        )
        if self.acknowledge_mode is not None:
            container.acknowledge_mode = self.acknowledge_mode
        if self.concurrency is not None:
            container.concurrency = self.concurrency
        if self.prefetch is not None:
            container.prefetch = self.prefetch
        if self.default_requeue_rejected is not None:
            container.default_requeue_rejected = self.default_requeue_rejected
        return container


class RabbitListenerEndpointRegistry:
    """Owns listener containers and starts them with the application context."""

    def __init__(
        self,
        container_factory: SimpleRabbitListenerContainerFactory,
        *,
        auto_startup: bool = True,
    ) -> None:
        self._container_factory = container_factory
        self.auto_startup = auto_startup
        self._endpoints: dict[str, RabbitListenerEndpoint] = {}
        self._containers: dict[str, MessageListenerContainer] = {}

    def register_endpoint(self, endpoint: RabbitListenerEndpoint) -> None:
        if endpoint.id in self._endpoints:
            raise ValueError(f"Duplicate listener id '{endpoint.id}'")
        self._endpoints[endpoint.id] = endpoint
        logger.debug("listener_registered", listener=endpoint.id, queues=list(endpoint.queues))

    @property
    def endpoints(self) -> list[RabbitListenerEndpoint]:
        return list(self._endpoints.values())

    @property
    def listener_containers(self) -> list[MessageListenerContainer]:
        return list(self._containers.values())

    def get_listener_container(self, listener_id: str) -> MessageListenerContainer | None:
        return self._containers.get(listener_id)

    async def start(self) -> None:
        for endpoint_id, endpoint in self._endpoints.items():
            if endpoint_id not in self._containers:
                self._containers[endpoint_id] = self._container_factory.create_container(endpoint)
        if not self.auto_startup:
            logger.info("listeners_not_started", reason="auto_startup disabled", count=len(self._containers))
            return
        for container in self._containers.values():
            await container.start()

    async def stop(self) -> None:
        for container in reversed(list(self._containers.values())):
            await container.stop()


class RabbitListenerAnnotationBeanPostProcessor:
    """Registers every ``@rabbit_listener`` method of every bean."""

    def __init__(self, registry: RabbitListenerEndpointRegistry) -> None:
        self._registry = registry

    def before_init(self, bean: Any, bean_name: str) -> Any:
        return bean

    def after_init(self, bean: Any, bean_name: str) -> Any:
        seen: set[str] = set()
        for klass in type(bean).__mro__:
            for attr_name, attr in vars(klass).items():
                if attr_name in seen:
                    continue
                seen.add(attr_name)
                if not getattr(attr, "__rabbitfly_rabbit_listener__", False):
                    continue
                listener_id = attr.__rabbitfly_listener_id__ or f"{type(bean).__qualname__}.{attr_name}"
                self._registry.register_endpoint(
                    RabbitListenerEndpoint(
                        id=listener_id,
                        queues=tuple(attr.__rabbitfly_listener_queues__),
                        handler=getattr(bean, attr_name),
                    )
                )
        return bean
