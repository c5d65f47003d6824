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
"""RabbitTemplate — send and receive messages through cached channels."""

from __future__ import annotations

from typing import Any

import structlog

from rabbitfly.amqp.connection import ConnectionFactory
from rabbitfly.amqp.converter import MessageConverter, SimpleMessageConverter
from rabbitfly.amqp.core import Message, MessageProperties

logger = structlog.get_logger("rabbitfly.amqp.template")


def to_amqp_message(message: Message) -> Any:
    """Build an aio-pika message from a :class:`Message`."""
    import aio_pika

    props = message.properties
    return aio_pika.Message(
        body=message.body,
        headers=dict(props.headers),
        content_type=props.content_type,
        content_encoding=props.content_encoding,
        delivery_mode=props.delivery_mode,
        priority=props.priority,
        correlation_id=props.correlation_id,
        reply_to=props.reply_to,
        # aio-pika takes seconds, AMQP carries milliseconds
        expiration=int(props.expiration) / 1000 if props.expiration else None,
        message_id=props.message_id,
    )


def from_amqp_message(incoming: Any) -> Message:
    """Build a :class:`Message` from a delivered aio-pika message."""
    delivery_mode = incoming.delivery_mode
    expiration = incoming.expiration
    return Message(
        body=incoming.body,
        properties=MessageProperties(
            content_type=incoming.content_type or MessageProperties.content_type,
            content_encoding=incoming.content_encoding,
            headers=dict(incoming.headers or {}),
            delivery_mode=int(delivery_mode) if delivery_mode is not None else None,
            correlation_id=incoming.correlation_id,
            reply_to=incoming.reply_to,
            message_id=incoming.message_id,
            priority=incoming.priority,
            expiration=str(int(expiration * 1000)) if expiration else None,
        ),
    )


class RabbitTemplate:
    """Synchronous-style helper for publishing and polling.

    ``exchange`` and ``routing_key`` are the defaults used when a send call
    names none; ``""`` is the broker's default exchange, which routes by queue
    name. Payloads go through ``message_converter``.
    """

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        self._connection_factory = connection_factory
        self.exchange = ""
        self.routing_key = ""
        self.default_receive_queue: str | None = None
        self.message_converter: MessageConverter = SimpleMessageConverter()
        self.mandatory = False

    @property
    def connection_factory(self) -> ConnectionFactory:
        return self._connection_factory

    async def send(
        self,
        message: Message,
        *,
        exchange: str | None = None,
        routing_key: str | None = None,
    ) -> None:
        exchange_name = self.exchange if exchange is None else exchange
        key = self.routing_key if routing_key is None else routing_key
        async with self._connection_factory.channel() as channel:
            if exchange_name:
                target = await channel.get_exchange(exchange_name, ensure=False)
            else:
                target = channel.default_exchange
            await target.publish(to_amqp_message(message), routing_key=key, mandatory=self.mandatory)
        logger.debug("message_sent", exchange=exchange_name, routing_key=key, size=len(message.body))

    async def convert_and_send(
        self,
        payload: Any,
        *,
        exchange: str | None = None,
        routing_key: str | None = None,
        properties: MessageProperties | None = None,
    ) -> None:
        message = self.message_converter.to_message(payload, properties)
        await self.send(message, exchange=exchange, routing_key=routing_key)

    async def receive(self, queue: str | None = None) -> Message | None:
        """Fetch one message without waiting; None when the queue is empty."""
        queue_name = queue or self.default_receive_queue
        if not queue_name:
            raise ValueError("No queue given and no default_receive_queue set")
        async with self._connection_factory.channel() as channel:
            amqp_queue = await channel.get_queue(queue_name, ensure=False)
            incoming = await amqp_queue.get(no_ack=True, fail=False)
        if incoming is None:
            return None
        return from_amqp_message(incoming)

    async def receive_and_convert(self, queue: str | None = None) -> Any | None:
        message = await self.receive(queue)
        if message is None:
            return None
        return self.message_converter.from_message(message)
