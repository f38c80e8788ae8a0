# bookstore/client/store.py
import json
from abc import ABC, abstractmethod
from pathlib import Path


class LocalStore(ABC):
    """Key/value storage that survives reloads of one browsing context."""

    @abstractmethod
    def get(self, key: str) -> str | None: ...

    @abstractmethod
    def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...


class MemoryStore(LocalStore):
    def __init__(self, initial: dict[str, str] | None = None):
        self.values = dict(initial or {})

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value):
        self.values[key] = value

    def delete(self, key):
        self.values.pop(key, None)


class JsonFileStore(LocalStore):
    """Persists every write to a small JSON document."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def _dump(self, values: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(values, f)

    def get(self, key):
        return self._load().get(key)

    def set(self, key, value):
        values = self._load()
        values[key] = value
        self._dump(values)

    def delete(self, key):
        values = self._load()
        if values.pop(key, None) is not None:
            self._dump(values)
