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
"""AMQP messages and topology declarables."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

CONTENT_TYPE_BYTES = "application/octet-stream"
CONTENT_TYPE_TEXT_PLAIN = "text/plain"
CONTENT_TYPE_JSON = "application/json"


@dataclass(frozen=True)
class MessageProperties:
    content_type: str = CONTENT_TYPE_BYTES
    content_encoding: str | None = None
    headers: dict[str, Any] = field(default_factory=dict)
    delivery_mode: int | None = None
    correlation_id: str | None = None
    reply_to: str | None = None
    message_id: str | None = None
    priority: int | None = None
    expiration: str | None = None


@dataclass(frozen=True)
class Message:
    """An AMQP message body plus its properties."""

    body: bytes
    properties: MessageProperties = field(default_factory=MessageProperties)


class ExchangeType(str, Enum):
    DIRECT = "direct"
    FANOUT = "fanout"
    TOPIC = "topic"
    HEADERS = "headers"


@dataclass(frozen=True)
class Exchange:
    name: str
    type: ExchangeType = ExchangeType.DIRECT
    durable: bool = True
    auto_delete: bool = False
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Queue:
    name: str
    durable: bool = True
    exclusive: bool = False
    auto_delete: bool = False
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Binding:
    """Binds ``queue`` to ``exchange`` under ``routing_key``."""

    queue: str
    exchange: str
    routing_key: str = ""
    arguments: dict[str, Any] = field(default_factory=dict)


class Declarables:
    """A group of exchanges, queues and bindings declared together.

    Register one as a bean and RabbitAdmin declares its contents whenever a
    new connection is opened.
    """

    def __init__(self, *declarables: Exchange | Queue | Binding) -> None:
        self._declarables = list(declarables)

    @property
    def exchanges(self) -> list[Exchange]:
        return [d for d in self._declarables if isinstance(d, Exchange)]

    @property
    def queues(self) -> list[Queue]:
        return [d for d in self._declarables if isinstance(d, Queue)]

    @property
    def bindings(self) -> list[Binding]:
        return [d for d in self._declarables if isinstance(d, Binding)]

    def __len__(self) -> int:
        return len(self._declarables)

    def __repr__(self) -> str:
        return f"Declarables({self._declarables!r})"
