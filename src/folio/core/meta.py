"""Namespaced document metadata."""

from collections.abc import Iterator, MutableMapping
from typing import Any

TITLE_SYNC = "core/title_sync"


def _checked(key: str) -> str:
    if not isinstance(key, str):
        raise ValueError(f"metadata key {key!r} is not a string")
    namespace, sep, name = key.partition("/")
    if not (namespace and sep and name):
        raise ValueError(f"metadata key {key!r} is not of the form 'namespace/name'")
    return key


class MetaBag(MutableMapping[str, Any]):
    """Document metadata keyed "<namespace>/<name>", e.g.

    - "core/title_sync": False
    - "core/icon": "book"
    - "user/properties": {"status": "draft"}

    The engine reads only ``core/`` keys and requires none of them. Other
    namespaces belong to the host and travel through persistence untouched.
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._values: dict[str, Any] = {}
        for key, value in (initial or {}).items():
            self[key] = value

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._values[_checked(key)] = value

    def __delitem__(self, key: str) -> None:
        del self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"MetaBag({self._values!r})"

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self._values.get(key, default)
        return value if isinstance(value, bool) else default

    def namespace(self, name: str) -> dict[str, Any]:
        """Keys of one namespace with the prefix stripped."""
        prefix = name + "/"
        return {k[len(prefix):]: v for k, v in self._values.items() if k.startswith(prefix)}

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)
