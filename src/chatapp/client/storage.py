# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Key-value storage shared between client contexts, with change notification.

A browser gives every tab the same local storage and tells the *other* tabs
when a key changes. ``MemoryStorage`` is the in-process stand-in: one shared
backend, one ``StorageContext`` handle per tab. A context never receives
events for its own writes.
"""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Tuple


@dataclass(frozen=True)
class StorageEvent:
    key: Optional[str]  # None when the whole storage was cleared
    old_value: Optional[str]
    new_value: Optional[str]
    source: str


Listener = Callable[[StorageEvent], None]


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def subscribe(self, listener: Listener) -> Callable[[], None]: ...


class MemoryStorage:
    """Backend shared by every context created from it."""

    _ids = itertools.count(1)

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()
        self._listeners: List[Tuple[str, Listener]] = []

    def context(self, name: Optional[str] = None) -> "StorageContext":
        return StorageContext(self, name or f"ctx-{next(self._ids)}")

    def _get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def _apply(self, key: Optional[str], value: Optional[str], source: str) -> None:
        with self._lock:
            if key is None:
                changed = bool(self._data)
                old = None
                self._data.clear()
            else:
                old = self._data.get(key)
                if value is None:
                    self._data.pop(key, None)
                else:
                    self._data[key] = value
                changed = old != value
            listeners = [fn for ctx, fn in self._listeners if ctx != source]
        if not changed:
            return
        event = StorageEvent(key=key, old_value=old, new_value=value, source=source)
        for fn in listeners:
            fn(event)

    def _subscribe(self, source: str, listener: Listener) -> Callable[[], None]:
        entry = (source, listener)
        with self._lock:
            self._listeners.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._listeners:
                    self._listeners.remove(entry)

        return unsubscribe


class StorageContext:
    """One client context's view of a shared ``MemoryStorage``."""

    def __init__(self, backend: MemoryStorage, name: str) -> None:
        self.backend = backend
        self.name = name

    def get_item(self, key: str) -> Optional[str]:
        return self.backend._get(key)

    def set_item(self, key: str, value: str) -> None:
        self.backend._apply(key, value, self.name)

    def remove_item(self, key: str) -> None:
        self.backend._apply(key, None, self.name)

    def clear(self) -> None:
        self.backend._apply(None, None, self.name)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.backend._subscribe(self.name, listener)
