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
"""Lifecycle protocol for beans that run background work.

Analogous to Spring's Lifecycle interface. The ApplicationContext calls
start() once every bean is initialized and stop() during shutdown.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Lifecycle(Protocol):
    """Start/stop contract for beans such as listener registries.

    Connection factories deliberately do not implement this protocol: they
    connect lazily on first use and are torn down through ``@pre_destroy``.
    """

    async def start(self) -> None:
        """Begin background work (e.g. start consuming).

        Called after context refresh, in registration order. Exceptions abort
        startup.
        """
        ...

    async def stop(self) -> None:
        """Stop background work. Called in reverse registration order."""
        ...
