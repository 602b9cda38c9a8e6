"""
View-layer ports

The booking components never render anything themselves; the page layer
hands in objects implementing these protocols.
"""

from __future__ import annotations

from typing import Mapping, Optional, Protocol


class HoldPrompt(Protocol):
    """Blocking confirmation dialog shown while a hold is about to expire"""

    def open(self, title: str, message: str, confirm_label: str, cancel_label: str) -> None: ...

    def update_message(self, message: str) -> None: ...

    def close(self) -> None: ...


class Navigator(Protocol):
    def navigate(self, route: str, params: Optional[Mapping[str, object]] = None) -> None:
        """In-application navigation"""

    def redirect(self, url: str) -> None:
        """Leave the application (external payment checkout)"""


class Notifier(Protocol):
    def error(self, title: str, message: str) -> None: ...

    def success(self, title: str, message: str) -> None: ...

    def info(self, title: str, message: str) -> None: ...
