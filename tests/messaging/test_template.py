"""Tests for RabbitMessagingTemplate."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from rabbitfly.amqp.converter import JsonMessageConverter, SimpleMessageConverter
from rabbitfly.amqp.core import CONTENT_TYPE_JSON, Message, MessageProperties
from rabbitfly.messaging.template import RabbitMessagingTemplate
from rabbitfly.messaging.types import GenericMessage


def _rabbit_template(converter=None) -> MagicMock:
    template = MagicMock()
    template.message_converter = converter or SimpleMessageConverter()
    template.send = AsyncMock()
    template.receive = AsyncMock(return_value=None)
    return template


class TestSend:
    @pytest.mark.asyncio
    async def test_send_converts_payload_and_keeps_headers(self) -> None:
        rabbit = _rabbit_template()
        template = RabbitMessagingTemplate(rabbit)
        await template.send(GenericMessage("hi", {"tenant": "acme"}), "orders")

        sent = rabbit.send.await_args.args[0]
        assert sent.body == b"hi"
        assert sent.properties.headers == {"tenant": "acme"}
        assert rabbit.send.await_args.kwargs == {"routing_key": "orders"}

    @pytest.mark.asyncio
    async def test_convert_and_send_uses_default_destination(self) -> None:
        rabbit = _rabbit_template(JsonMessageConverter())
        template = RabbitMessagingTemplate(rabbit)
        template.default_destination = "events"
        await template.convert_and_send({"id": 1})

        sent = rabbit.send.await_args.args[0]
        assert sent.properties.content_type == CONTENT_TYPE_JSON
        assert rabbit.send.await_args.kwargs["routing_key"] == "events"

    @pytest.mark.asyncio
    async def test_missing_destination(self) -> None:
        template = RabbitMessagingTemplate(_rabbit_template())
        with pytest.raises(ValueError):
            await template.convert_and_send("hi")


class TestReceive:
    @pytest.mark.asyncio
    async def test_receive_empty_queue(self) -> None:
        template = RabbitMessagingTemplate(_rabbit_template())
        assert await template.receive("orders") is None
        assert await template.receive_and_convert("orders") is None

    @pytest.mark.asyncio
    async def test_receive_builds_generic_message(self) -> None:
        rabbit = _rabbit_template(JsonMessageConverter())
        rabbit.receive.return_value = Message(
            b'{"id": 7}',
            MessageProperties(
                content_type=CONTENT_TYPE_JSON,
                headers={"tenant": "acme"},
                correlation_id="c-1",
            ),
        )
        template = RabbitMessagingTemplate(rabbit)

        message = await template.receive("orders")
        assert message is not None
        assert message.payload == {"id": 7}
        assert message.headers == {"tenant": "acme", "content_type": CONTENT_TYPE_JSON, "correlation_id": "c-1"}
        rabbit.receive.assert_awaited_with("orders")

    @pytest.mark.asyncio
    async def test_receive_and_convert(self) -> None:
        rabbit = _rabbit_template()
        rabbit.receive.return_value = Message(b"plain", MessageProperties(content_type="text/plain"))
        template = RabbitMessagingTemplate(rabbit)
        assert await template.receive_and_convert("orders") == "plain"
