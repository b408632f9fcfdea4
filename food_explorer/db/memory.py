from __future__ import annotations

from typing import Dict, List, Optional


class StorageFullError(OSError):
    pass


class MemoryStorage:
    """In-memory Storage for tests and throwaway sessions.

    `fail_writes=True` simulates a full disk / exceeded quota.
    """

    def __init__(self, data: Optional[Dict[str, str]] = None, fail_writes: bool = False) -> None:
        self.data: Dict[str, str] = dict(data or {})
        self.fail_writes = fail_writes
        self.writes: List[str] = []

    def get_item(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StorageFullError(f"quota exceeded while writing {key!r}")
        self.data[key] = value
        self.writes.append(key)

    def remove_item(self, key: str) -> None:
        self.data.pop(key, None)
