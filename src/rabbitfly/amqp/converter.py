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
"""Message converters — translate between payload objects and AMQP messages."""

from __future__ import annotations

import dataclasses
import json
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from rabbitfly.amqp.core import (
    CONTENT_TYPE_BYTES,
    CONTENT_TYPE_JSON,
    CONTENT_TYPE_TEXT_PLAIN,
    Message,
    MessageProperties,
)
from rabbitfly.kernel.exceptions import MessageConversionException


@runtime_checkable
class MessageConverter(Protocol):
    """Converts payloads to messages and back."""

    def to_message(self, obj: Any, properties: MessageProperties | None = None) -> Message: ...

    def from_message(self, message: Message) -> Any: ...


class SimpleMessageConverter:
    """Default converter: bytes pass through, str is UTF-8 text."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    def to_message(self, obj: Any, properties: MessageProperties | None = None) -> Message:
        props = properties or MessageProperties()
        if isinstance(obj, (bytes, bytearray)):
            return Message(bytes(obj), dataclasses.replace(props, content_type=CONTENT_TYPE_BYTES))
        if isinstance(obj, str):
            return Message(
                obj.encode(self._encoding),
                dataclasses.replace(
                    props,
                    content_type=CONTENT_TYPE_TEXT_PLAIN,
                    content_encoding=self._encoding,
                ),
            )
        raise MessageConversionException(
            f"SimpleMessageConverter only supports str and bytes payloads, got {type(obj).__name__}",
            code="AMQP_CONVERSION",
        )

    def from_message(self, message: Message) -> Any:
        if message.properties.content_type.startswith("text"):
            return message.body.decode(message.properties.content_encoding or self._encoding)
        return message.body


class JsonMessageConverter:
    """JSON converter; pydantic models and dataclasses are dumped first."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    def to_message(self, obj: Any, properties: MessageProperties | None = None) -> Message:
        props = properties or MessageProperties()
        try:
            body = json.dumps(self._to_jsonable(obj)).encode(self._encoding)
        except (TypeError, ValueError) as exc:
            raise MessageConversionException(
                f"Cannot serialize {type(obj).__name__} to JSON: {exc}",
                code="AMQP_CONVERSION",
            ) from exc
        return Message(
            body,
            dataclasses.replace(props, content_type=CONTENT_TYPE_JSON, content_encoding=self._encoding),
        )

    def from_message(self, message: Message) -> Any:
        if "json" not in message.properties.content_type:
            return message.body
        try:
            return json.loads(message.body.decode(message.properties.content_encoding or self._encoding))
        except ValueError as exc:
            raise MessageConversionException(
                f"Invalid JSON message body: {exc}",
                code="AMQP_CONVERSION",
            ) from exc

    @staticmethod
    def _to_jsonable(obj: Any) -> Any:
        if isinstance(obj, BaseModel):
            return obj.model_dump(mode="json")
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)
        return obj
