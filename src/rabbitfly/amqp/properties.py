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
"""RabbitMQ configuration properties bound from YAML.

YAML structure::

    rabbitfly:
      rabbitmq:
        host: localhost
        port: 5672
        username: guest
        password: ${RABBIT_PASSWORD}
        virtual-host: /
        addresses: rabbit-1:5672,rabbit-2:5672
        requested-heartbeat: 30
        dynamic: true
        ssl:
          enabled: true
          key-store: /etc/rabbit/client.pem
          key-store-password: secret
          trust-store: /etc/rabbit/ca.pem
        cache:
          channel:
            size: 50
            checkout-timeout: 1000
          connection:
            mode: CHANNEL
            size: 1
        listener:
          auto-startup: true
          acknowledge-mode: AUTO
          concurrency: 2
          prefetch: 10
          default-requeue-rejected: false

Every optional value left unset means "keep the client library default".
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rabbitfly.amqp.connection import DEFAULT_PORT, CacheMode
from rabbitfly.amqp.listener import AcknowledgeMode
from rabbitfly.core.config import config_properties


class _Properties(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class SslProperties(_Properties):
    """``rabbitfly.rabbitmq.ssl.*``.

    ``key_store`` is a PEM file holding the client certificate chain and its
    private key, decrypted with ``key_store_password``. ``trust_store`` is a
    PEM CA bundle; PEM bundles are not encrypted so ``trust_store_password``
    is accepted but unused.
    """

    enabled: bool = False
    key_store: str | None = Field(default=None, alias="key-store")
    key_store_password: str | None = Field(default=None, alias="key-store-password", repr=False)
    trust_store: str | None = Field(default=None, alias="trust-store")
    trust_store_password: str | None = Field(default=None, alias="trust-store-password", repr=False)


class ChannelCacheProperties(_Properties):
    """``rabbitfly.rabbitmq.cache.channel.*``."""

    size: int | None = Field(default=None, ge=1)
    checkout_timeout: int | None = Field(default=None, alias="checkout-timeout", ge=0)


class ConnectionCacheProperties(_Properties):
    """``rabbitfly.rabbitmq.cache.connection.*``."""

    mode: CacheMode | None = None
    size: int | None = Field(default=None, ge=1)

    @field_validator("mode", mode="before")
    @classmethod
    def _upper_mode(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class CacheProperties(_Properties):
    """``rabbitfly.rabbitmq.cache.*``."""

    channel: ChannelCacheProperties = Field(default_factory=ChannelCacheProperties)
    connection: ConnectionCacheProperties = Field(default_factory=ConnectionCacheProperties)


class ListenerProperties(_Properties):
    """``rabbitfly.rabbitmq.listener.*``."""

    auto_startup: bool = Field(default=True, alias="auto-startup")
    acknowledge_mode: AcknowledgeMode | None = Field(default=None, alias="acknowledge-mode")
    concurrency: int | None = Field(default=None, ge=1)
    prefetch: int | None = Field(default=None, ge=0)
    default_requeue_rejected: bool | None = Field(default=None, alias="default-requeue-rejected")

    @field_validator("acknowledge_mode", mode="before")
    @classmethod
    def _upper_mode(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


@config_properties(prefix="rabbitfly.rabbitmq")
class RabbitProperties(_Properties):
    """Root RabbitMQ configuration (``rabbitfly.rabbitmq.*``)."""

    host: str | None = "localhost"
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    virtual_host: str | None = Field(default=None, alias="virtual-host")
    addresses: str | None = None
    requested_heartbeat: int | None = Field(default=None, alias="requested-heartbeat", ge=0)
    dynamic: bool = True
    ssl: SslProperties = Field(default_factory=SslProperties)
    cache: CacheProperties = Field(default_factory=CacheProperties)
    listener: ListenerProperties = Field(default_factory=ListenerProperties)

    @field_validator("host", "username", "password", "virtual_host", "addresses", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def determine_addresses(self) -> str | None:
        """The explicit address list, else ``host:port``, else None."""
        if self.addresses:
            return self.addresses
        if self.host:
            return f"{self.host}:{self.port}"
        return None
