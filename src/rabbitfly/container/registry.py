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
"""Bean registration metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from rabbitfly.container.types import Scope


@dataclass
class Registration:
    """A registered bean: its key type, scope and, once built, its instance."""

    impl_type: type
    scope: Scope = Scope.SINGLETON
    instance: Any = field(default=None, repr=False)
    name: str = ""
    primary: bool = False

    @property
    def instance_type(self) -> type:
        """Concrete type of the held instance, falling back to the key type."""
        return type(self.instance) if self.instance is not None else self.impl_type
