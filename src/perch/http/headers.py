"""Case-insensitive HTTP header collections.

``Headers`` is the immutable view carried by a ``Response`` (and a
``Request``).  ``MutableHeaders`` is the outer page response's header
collection on the server: ``set`` replaces every value of a name, so
repeated writes of the same header are last-write-wins.
"""

from collections.abc import Iterable, Iterator, Mapping
from typing import TypeAlias

HeaderSource: TypeAlias = Mapping[str, str] | Iterable[tuple[str, str]]


def _pairs(source: HeaderSource) -> tuple[tuple[str, str], ...]:
    items = source.items() if isinstance(source, Mapping) else source
    return tuple((str(k), str(v)) for k, v in items)


class Headers(Mapping[str, str]):
    """Read-only headers keyed by lowercased name.

    Lookups return the first value sent under a name; ``get_list`` gives
    all of them.  ``items()`` and ``raw`` keep the original pairs, case
    and duplicates included, so nothing is lost on a copy.
    """

    __slots__ = ("_index", "_raw")

    def __init__(self, raw: HeaderSource = ()) -> None:
        self._raw = _pairs(raw)
        self._index: dict[str, list[str]] = {}
        for name, value in self._raw:
            self._index.setdefault(name.lower(), []).append(value)

    def __getitem__(self, key: str) -> str:
        values = self._index.get(key.lower())
        if not values:
            raise KeyError(key)
        return values[0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return self._raw == other._raw

    def __hash__(self) -> int:
        return hash(self._raw)

    def __repr__(self) -> str:
        first = {name: values[0] for name, values in self._index.items()}
        return f"Headers({first!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        values = self._index.get(key.lower())
        return values[0] if values else default

    def get_list(self, key: str) -> list[str]:
        """Every value sent under *key*, in order (``Set-Cookie`` and friends)."""
        return list(self._index.get(key.lower(), ()))

    def items(self) -> Iterator[tuple[str, str]]:  # type: ignore[override]
        """Yield every ``(name, value)`` pair, duplicates included."""
        return iter(self._raw)

    @property
    def raw(self) -> tuple[tuple[str, str], ...]:
        return self._raw


class MutableHeaders:
    """Case-insensitive header collection owned by the page response.

    ``set`` replaces any existing values for a name; ``append`` adds
    another value.  Iteration yields ``(name, value)`` pairs with the
    name as it was last written.
    """

    __slots__ = ("_items",)

    def __init__(self, raw: HeaderSource = ()) -> None:
        self._items: list[tuple[str, str]] = list(_pairs(raw))

    def set(self, name: str, value: str) -> None:
        """Replace every value of *name* with *value*."""
        self.delete(name)
        self._items.append((name, value))

    def append(self, name: str, value: str) -> None:
        """Add a value without touching existing ones."""
        self._items.append((name, value))

    def delete(self, name: str) -> None:
        """Remove *name*; a missing name is a no-op."""
        lowered = name.lower()
        self._items = [(k, v) for k, v in self._items if k.lower() != lowered]

    def get(self, name: str, default: str | None = None) -> str | None:
        return next(iter(self.get_list(name)), default)

    def get_list(self, name: str) -> list[str]:
        lowered = name.lower()
        return [v for k, v in self._items if k.lower() == lowered]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and bool(self.get_list(name))

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"MutableHeaders({self._items!r})"
