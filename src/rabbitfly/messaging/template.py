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
"""RabbitMessagingTemplate — GenericMessage send/receive over a RabbitTemplate."""

from __future__ import annotations

from typing import Any

from rabbitfly.amqp.core import Message, MessageProperties
from rabbitfly.amqp.template import RabbitTemplate
from rabbitfly.messaging.types import GenericMessage


class RabbitMessagingTemplate:
    """Sends and receives GenericMessage objects.

    Destinations are routing keys on the wrapped template's default exchange
    when sending and queue names when receiving. ``default_destination`` is
    used when a call names none.
    """

    default_destination: str | None

    def __init__(self, rabbit_template: RabbitTemplate) -> None:
        self._rabbit_template = rabbit_template
        self.default_destination = None

    @property
    def rabbit_template(self) -> RabbitTemplate:
        return self._rabbit_template

    async def send(self, message: GenericMessage, destination: str | None = None) -> None:
        amqp_message = self._rabbit_template.message_converter.to_message(
            message.payload, MessageProperties(headers=dict(message.headers))
        )
        await self._rabbit_template.send(amqp_message, routing_key=self._destination(destination))

    async def convert_and_send(
        self,
        payload: Any,
        destination: str | None = None,
        headers: dict[str, Any] | None = None,
    ) -> None:
        await self.send(GenericMessage(payload, dict(headers or {})), destination)

    async def receive(self, destination: str | None = None) -> GenericMessage | None:
        message = await self._rabbit_template.receive(self._destination(destination))
        if message is None:
            return None
        return self._to_generic(message)

    async def receive_and_convert(self, destination: str | None = None) -> Any | None:
        message = await self.receive(destination)
        return None if message is None else message.payload

    def _destination(self, destination: str | None) -> str:
        resolved = destination or self.default_destination
        if resolved is None:
            raise ValueError("No destination given and no default_destination set")
        return resolved

    def _to_generic(self, message: Message) -> GenericMessage:
        payload = self._rabbit_template.message_converter.from_message(message)
        headers: dict[str, Any] = dict(message.properties.headers)
        headers["content_type"] = message.properties.content_type
        if message.properties.correlation_id is not None:
            headers["correlation_id"] = message.properties.correlation_id
        return GenericMessage(payload, headers)
