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
"""RabbitFly AMQP — connection factory, admin, template and listeners over aio-pika."""

from rabbitfly.amqp.admin import AmqpAdmin, RabbitAdmin
from rabbitfly.amqp.connection import (
    Address,
    CacheMode,
    CachingConnectionFactory,
    ConnectionFactory,
    ConnectionParameters,
    RabbitConnectionFactoryBean,
)
from rabbitfly.amqp.converter import JsonMessageConverter, MessageConverter, SimpleMessageConverter
from rabbitfly.amqp.core import (
    Binding,
    Declarables,
    Exchange,
    ExchangeType,
    Message,
    MessageProperties,
    Queue,
)
from rabbitfly.amqp.listener import (
    AcknowledgeMode,
    RabbitListenerEndpointRegistry,
    SimpleRabbitListenerContainerFactory,
    rabbit_listener,
)
from rabbitfly.amqp.properties import RabbitProperties
from rabbitfly.amqp.template import RabbitTemplate

__all__ = [
    "AcknowledgeMode",
    "Address",
    "AmqpAdmin",
    "Binding",
    "CacheMode",
    "CachingConnectionFactory",
    "ConnectionFactory",
    "ConnectionParameters",
    "Declarables",
    "Exchange",
    "ExchangeType",
    "JsonMessageConverter",
    "Message",
    "MessageConverter",
    "MessageProperties",
    "Queue",
    "RabbitAdmin",
    "RabbitConnectionFactoryBean",
    "RabbitListenerEndpointRegistry",
    "RabbitProperties",
    "RabbitTemplate",
    "SimpleMessageConverter",
    "SimpleRabbitListenerContainerFactory",
    "rabbit_listener",
]
