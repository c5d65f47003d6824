"""Messaging data types."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class GenericMessage:
    payload: Any
    headers: dict[str, Any] = field(default_factory=dict)
