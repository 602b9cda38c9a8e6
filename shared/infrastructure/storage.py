"""
Client session storage

Keeps per-client booking state (draft, retry payload) across navigation.
The Django cache backend is used in deployments (django-redis); the
in-memory backend serves tests and single-process tools.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any

from django.conf import settings  # type: ignore
from django.core.cache import caches  # type: ignore

logger = logging.getLogger(__name__)


class SessionStorage(ABC):
    """Key/value storage scoped to a single client"""

    def __init__(self, client_id: str):
        if not client_id:
            raise ValueError("client_id is required")
        self.client_id = client_id

    def _key(self, name: str) -> str:
        return f"booking-session:{self.client_id}:{name}"

    @abstractmethod
    def get(self, name: str) -> Any | None:
        ...

    @abstractmethod
    def set(self, name: str, value: Any) -> None:
        ...

    @abstractmethod
    def delete(self, name: str) -> None:
        ...


class InMemorySessionStorage(SessionStorage):

    def __init__(self, client_id: str, data: dict | None = None):
        super().__init__(client_id)
        self._data: dict[str, Any] = data if data is not None else {}

    def get(self, name: str) -> Any | None:
        return copy.deepcopy(self._data.get(self._key(name)))

    def set(self, name: str, value: Any) -> None:
        self._data[self._key(name)] = copy.deepcopy(value)

    def delete(self, name: str) -> None:
        self._data.pop(self._key(name), None)


class CacheSessionStorage(SessionStorage):
    """Storage backed by a Django cache alias"""

    def __init__(self, client_id: str, *, alias: str = "default", timeout: int | None = None):
        super().__init__(client_id)
        self._cache = caches[alias]
        self._timeout = timeout if timeout is not None else getattr(settings, "BOOKING_SESSION_TTL", 7 * 24 * 3600)

    def get(self, name: str) -> Any | None:
        return self._cache.get(self._key(name))

    def set(self, name: str, value: Any) -> None:
        self._cache.set(self._key(name), value, self._timeout)
        logger.debug(f"Stored {name} for client {self.client_id}")

    def delete(self, name: str) -> None:
        self._cache.delete(self._key(name))
