from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Page:
    """View model handed to the templates. One instance per request."""

    title: str = ""
    csrf_token: str = ""
    error_messages: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)

    def add_error(self, message: str) -> None:
        self.error_messages.append(message)

    def set_data(self, values: Mapping[str, Any]) -> None:
        self.data.update(values)

    def reset_errors(self) -> None:
        self.error_messages = []

    @property
    def has_errors(self) -> bool:
        return bool(self.error_messages)
