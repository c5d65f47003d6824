"""RabbitFly Messaging — broker-neutral messages over a RabbitTemplate."""

from rabbitfly.messaging.ports.outbound import MessagingTemplate
from rabbitfly.messaging.template import RabbitMessagingTemplate
from rabbitfly.messaging.types import GenericMessage

__all__ = [
    "GenericMessage",
    "MessagingTemplate",
    "RabbitMessagingTemplate",
]
