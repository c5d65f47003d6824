"""Tests for message converters."""

from dataclasses import dataclass

import pytest
from pydantic import BaseModel

from rabbitfly.amqp.converter import JsonMessageConverter, MessageConverter, SimpleMessageConverter
from rabbitfly.amqp.core import Message, MessageProperties
from rabbitfly.kernel.exceptions import MessageConversionException


class OrderCreated(BaseModel):
    order_id: int
    total: float


@dataclass
class Shipment:
    order_id: int
    carrier: str


class TestSimpleMessageConverter:
    def test_protocol_compliance(self):
        assert isinstance(SimpleMessageConverter(), MessageConverter)

    def test_bytes_pass_through(self):
        message = SimpleMessageConverter().to_message(b"\x00\x01")
        assert message.body == b"\x00\x01"
        assert message.properties.content_type == "application/octet-stream"

    def test_text_is_utf8(self):
        converter = SimpleMessageConverter()
        message = converter.to_message("héllo")
        assert message.properties.content_type == "text/plain"
        assert message.properties.content_encoding == "utf-8"
        assert converter.from_message(message) == "héllo"

    def test_keeps_given_headers(self):
        message = SimpleMessageConverter().to_message("x", MessageProperties(headers={"trace": "abc"}))
        assert message.properties.headers == {"trace": "abc"}

    def test_unsupported_payload(self):
        with pytest.raises(MessageConversionException):
            SimpleMessageConverter().to_message({"a": 1})


class TestJsonMessageConverter:
    def test_dict(self):
        converter = JsonMessageConverter()
        message = converter.to_message({"a": 1})
        assert message.properties.content_type == "application/json"
        assert converter.from_message(message) == {"a": 1}

    def test_pydantic_model(self):
        message = JsonMessageConverter().to_message(OrderCreated(order_id=7, total=9.5))
        assert JsonMessageConverter().from_message(message) == {"order_id": 7, "total": 9.5}

    def test_dataclass(self):
        message = JsonMessageConverter().to_message(Shipment(order_id=7, carrier="ups"))
        assert JsonMessageConverter().from_message(message) == {"order_id": 7, "carrier": "ups"}

    def test_non_json_content_returned_raw(self):
        message = Message(b"raw", MessageProperties(content_type="application/octet-stream"))
        assert JsonMessageConverter().from_message(message) == b"raw"

    def test_invalid_json(self):
        message = Message(b"{not json", MessageProperties(content_type="application/json"))
        with pytest.raises(MessageConversionException):
            JsonMessageConverter().from_message(message)

    def test_unserializable(self):
        with pytest.raises(MessageConversionException):
            JsonMessageConverter().to_message(object())
