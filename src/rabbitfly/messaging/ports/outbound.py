"""Outbound port for broker-neutral message templates."""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from rabbitfly.messaging.types import GenericMessage


@runtime_checkable
class MessagingTemplate(Protocol):
    default_destination: str | None

    async def send(self, message: GenericMessage, destination: str | None = None) -> None: ...

    async def convert_and_send(
        self,
        payload: Any,
        destination: str | None = None,
        headers: dict[str, Any] | None = None,
    ) -> None: ...

    async def receive(self, destination: str | None = None) -> GenericMessage | None: ...

    async def receive_and_convert(self, destination: str | None = None) -> Any | None: ...
