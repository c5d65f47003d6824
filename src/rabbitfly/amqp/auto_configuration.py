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
"""RabbitMQ auto-configuration.

Builds the connection factory, admin, template, messaging template and
listener infrastructure from ``rabbitfly.rabbitmq.*``. Every bean is skipped
when the application already registered one of the same type.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from rabbitfly.amqp.admin import AmqpAdmin, RabbitAdmin
from rabbitfly.amqp.connection import (
    CachingConnectionFactory,
    ConnectionFactory,
    RabbitConnectionFactoryBean,
)
from rabbitfly.amqp.converter import MessageConverter
from rabbitfly.amqp.core import Declarables
from rabbitfly.amqp.listener import (
    RabbitListenerAnnotationBeanPostProcessor,
    RabbitListenerEndpointRegistry,
    SimpleRabbitListenerContainerFactory,
)
from rabbitfly.amqp.properties import ListenerProperties, RabbitProperties
from rabbitfly.amqp.template import RabbitTemplate
from rabbitfly.container.bean import bean
from rabbitfly.container.ordering import order
from rabbitfly.context.conditions import (
    auto_configuration,
    conditional_on_bean,
    conditional_on_class,
    conditional_on_missing_bean,
    conditional_on_property,
)
from rabbitfly.core.config import Config
from rabbitfly.messaging.ports.outbound import MessagingTemplate

logger = structlog.get_logger("rabbitfly.amqp.auto_configuration")


# =============================================================================
# Builders
# =============================================================================


def build_connection_factory(properties: RabbitProperties) -> CachingConnectionFactory:
    """Create a CachingConnectionFactory from properties.

    Only values that are actually set are applied; everything else keeps the
    client library default.

    Raises:
        ConfigurationError: if TLS is enabled and its key or trust store
            cannot be loaded.
    """
    factory_bean = RabbitConnectionFactoryBean()
    if properties.host:
        factory_bean.host = properties.host
        factory_bean.port = properties.port
    if properties.username:
        factory_bean.username = properties.username
    if properties.password:
        factory_bean.password = properties.password
    if properties.virtual_host:
        factory_bean.virtual_host = properties.virtual_host
    if properties.requested_heartbeat is not None:
        factory_bean.requested_heartbeat = properties.requested_heartbeat

    ssl = properties.ssl
    if ssl.enabled:
        factory_bean.use_ssl = True
        if ssl.key_store:
            factory_bean.key_store = ssl.key_store
            factory_bean.key_store_passphrase = ssl.key_store_password
        if ssl.trust_store:
            factory_bean.trust_store = ssl.trust_store
            factory_bean.trust_store_passphrase = ssl.trust_store_password
    factory_bean.after_properties_set()

    factory = CachingConnectionFactory(factory_bean.get_object())
    addresses = properties.determine_addresses()
    if addresses:
        factory.set_addresses(addresses)

    cache = properties.cache
    if cache.channel.size is not None:
        factory.channel_cache_size = cache.channel.size
    if cache.connection.mode is not None:
        factory.cache_mode = cache.connection.mode
    if cache.connection.size is not None:
        factory.connection_cache_size = cache.connection.size
    if cache.channel.checkout_timeout is not None:
        factory.channel_checkout_timeout = cache.channel.checkout_timeout

    logger.info(
        "auto_configured",
        bean="connection_factory",
        addresses=[str(a) for a in factory.addresses],
        virtual_host=factory.virtual_host,
        ssl=factory.is_ssl,
        cache_mode=factory.cache_mode.value,
    )
    return factory


def build_admin_client(
    connection_factory: ConnectionFactory,
    dynamic_enabled: bool = True,
    declarables: Iterable[Declarables] = (),
) -> RabbitAdmin | None:
    """A RabbitAdmin when dynamic provisioning is enabled, else None."""
    if not dynamic_enabled:
        logger.info("auto_config_skip", bean="amqp_admin", reason="dynamic provisioning disabled")
        return None
    return RabbitAdmin(connection_factory, declarables)


def build_message_template(
    connection_factory: ConnectionFactory,
    message_converter: MessageConverter | None = None,
) -> RabbitTemplate:
    """A RabbitTemplate, using *message_converter* when one is given."""
    template = RabbitTemplate(connection_factory)
    if message_converter is not None:
        template.message_converter = message_converter
    logger.info(
        "auto_configured",
        bean="rabbit_template",
        converter=type(template.message_converter).__name__,
    )
    return template


def build_messaging_template(rabbit_template: RabbitTemplate) -> MessagingTemplate:
    from rabbitfly.messaging.template import RabbitMessagingTemplate

    return RabbitMessagingTemplate(rabbit_template)


def build_listener_container_factory(
    connection_factory: ConnectionFactory,
    listener: ListenerProperties,
    message_converter: MessageConverter | None = None,
) -> SimpleRabbitListenerContainerFactory:
    factory = SimpleRabbitListenerContainerFactory(connection_factory)
    if message_converter is not None:
        factory.message_converter = message_converter
    if listener.acknowledge_mode is not None:
        factory.acknowledge_mode = listener.acknowledge_mode
    if listener.concurrency is not None:
        factory.concurrency = listener.concurrency
    if listener.prefetch is not None:
        factory.prefetch = listener.prefetch
    if listener.default_requeue_rejected is not None:
        factory.default_requeue_rejected = listener.default_requeue_rejected
    return factory


# =============================================================================
# Auto-configuration classes
# =============================================================================


@auto_configuration
@conditional_on_class("aio_pika")
class RabbitAutoConfiguration:
    """Connection factory, admin and template."""

    @bean
    @conditional_on_missing_bean(RabbitProperties)
    def rabbit_properties(self, config: Config) -> RabbitProperties:
        return config.bind(RabbitProperties)

    @bean
    @conditional_on_missing_bean(ConnectionFactory)
    def rabbit_connection_factory(self, properties: RabbitProperties) -> ConnectionFactory:
        return build_connection_factory(properties)

    @bean
    @conditional_on_property("rabbitfly.rabbitmq.dynamic", match_if_missing=True)
    @conditional_on_missing_bean(AmqpAdmin)
    def amqp_admin(
        self,
        connection_factory: ConnectionFactory,
        properties: RabbitProperties,
        declarables: list[Declarables],
    ) -> AmqpAdmin:
        return build_admin_client(connection_factory, properties.dynamic, declarables)

    @bean
    @conditional_on_missing_bean(RabbitTemplate)
    def rabbit_template(
        self,
        connection_factory: ConnectionFactory,
        message_converter: MessageConverter | None,
    ) -> RabbitTemplate:
        return build_message_template(connection_factory, message_converter)


@auto_configuration
@order(1100)
@conditional_on_class("rabbitfly.messaging.template")
class RabbitMessagingTemplateConfiguration:
    """Broker-neutral messaging template over the RabbitTemplate."""

    @bean
    @conditional_on_bean(RabbitTemplate)
    @conditional_on_missing_bean(MessagingTemplate)
    def rabbit_messaging_template(self, rabbit_template: RabbitTemplate) -> MessagingTemplate:
        return build_messaging_template(rabbit_template)


@auto_configuration
@order(1200)
@conditional_on_class("aio_pika")
class RabbitAnnotationDrivenConfiguration:
    """Listener container factory, endpoint registry and @rabbit_listener discovery."""

    @bean
    @conditional_on_bean(ConnectionFactory)
    @conditional_on_missing_bean(SimpleRabbitListenerContainerFactory)
    def rabbit_listener_container_factory(
        self,
        connection_factory: ConnectionFactory,
        properties: RabbitProperties,
        message_converter: MessageConverter | None,
    ) -> SimpleRabbitListenerContainerFactory:
        return build_listener_container_factory(connection_factory, properties.listener, message_converter)

    @bean
    @conditional_on_bean(SimpleRabbitListenerContainerFactory)
    @conditional_on_missing_bean(RabbitListenerEndpointRegistry)
    def rabbit_listener_endpoint_registry(
        self,
        container_factory: SimpleRabbitListenerContainerFactory,
        properties: RabbitProperties,
    ) -> RabbitListenerEndpointRegistry:
        return RabbitListenerEndpointRegistry(container_factory, auto_startup=properties.listener.auto_startup)

    @bean
    @conditional_on_bean(RabbitListenerEndpointRegistry)
    @conditional_on_missing_bean(RabbitListenerAnnotationBeanPostProcessor)
    def rabbit_listener_annotation_processor(
        self,
        registry: RabbitListenerEndpointRegistry,
    ) -> RabbitListenerAnnotationBeanPostProcessor:
        return RabbitListenerAnnotationBeanPostProcessor(registry)


AUTO_CONFIGURATIONS: list[type] = [
    RabbitAutoConfiguration,
    RabbitMessagingTemplateConfiguration,
    RabbitAnnotationDrivenConfiguration,
]
