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
"""Unified exception hierarchy for RabbitFly.

All framework exceptions inherit from RabbitFlyException, enabling unified
error handling across modules.

Categories:
- ConfigurationError: invalid or unreadable configuration, fatal at startup
- InfrastructureException: broker, network and resource failures
- AmqpException: failures raised by the AMQP client layer
"""

from __future__ import annotations


# =============================================================================
# Base Exception
# =============================================================================


class RabbitFlyException(Exception):
    """Base exception for all RabbitFly errors.

    Carries an optional error code and context dict for structured error data.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "CONFIG_SSL").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Configuration
# =============================================================================


class ConfigurationError(RabbitFlyException):
    """Configuration is malformed or references unreadable material.

    Raised while binding properties or building beans; aborts startup.
    """


# =============================================================================
# Infrastructure Exceptions
# =============================================================================


class InfrastructureException(RabbitFlyException):
    """Infrastructure failures: broker, network, pooled resources."""


class AmqpException(InfrastructureException):
    """Base class for errors raised by the AMQP client layer."""


class AmqpConnectException(AmqpException):
    """No broker address could be connected to."""


class AmqpTimeoutException(AmqpException):
    """A cached channel or connection could not be checked out in time."""


class MessageConversionException(AmqpException):
    """A payload could not be converted to or from an AMQP message."""
