class InMemoryCache:
    """Process-local cache; nothing survives the run."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def close(self) -> None:
        pass

    def size(self) -> int:
        """Return number of entries in cache."""
        return len(self._data)
