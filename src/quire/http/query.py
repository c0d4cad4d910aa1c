"""Immutable query string parameters.

Understands the ``name[]=a&name[]=b`` list convention used by the URL
builder, so ``path[]`` values come back as a list under ``path``.
"""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qs


def _strip_list_suffix(key: str) -> str:
    return key[:-2] if key.endswith("[]") else key


class QueryParams(Mapping[str, str]):
    """The query variables the router reads.

    ``setLocale`` on the install page, the ``source`` return path and, with
    path info disabled, ``context``/``page``/``op``/``path[]`` all come from
    here. ``q["path"]`` is the first value; ``q.get_list("path")`` the
    whole ``path[]`` list in request order.
    """

    _data: dict[str, list[str]]
    _raw: bytes

    __slots__ = ("_data", "_raw")

    def __init__(self, query_string: bytes = b"") -> None:
        object.__setattr__(self, "_raw", query_string)
        parsed: dict[str, list[str]] = {}
        for key, values in parse_qs(query_string.decode("latin-1"), keep_blank_values=True).items():
            parsed.setdefault(_strip_list_suffix(key), []).extend(values)
        object.__setattr__(self, "_data", parsed)

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"QueryParams({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._data.get(key)
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        return list(self._data.get(key, []))

    @property
    def raw(self) -> str:
        """The undecoded query string."""
        return self._raw.decode("latin-1")
