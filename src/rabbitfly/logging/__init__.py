"""RabbitFly Logging — logging port and the structlog adapter."""

from rabbitfly.logging.port import LoggingPort
from rabbitfly.logging.structlog_adapter import StructlogAdapter

__all__ = ["LoggingPort", "StructlogAdapter"]
