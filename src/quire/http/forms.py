"""Form body parsing — URL-encoded and multipart.

Posted fields take part in routing: they are merged into the request
variables (``source``, ``setLocale``, the path-info-disabled ``page``/``op``)
and any posted value makes a request uncacheable.

URL-encoded forms use stdlib ``urllib.parse``; multipart bodies are parsed
with ``python-multipart``.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs

from python_multipart.multipart import MultipartParser, parse_options_header

FORM_CONTENT_TYPES = frozenset({"application/x-www-form-urlencoded", "multipart/form-data"})


@dataclass(frozen=True, slots=True)
class UploadFile:
    """An uploaded file from a multipart form submission, held in memory."""

    filename: str
    content_type: str
    size: int
    _content: bytes

    async def read(self) -> bytes:
        """Return the file content as bytes."""
        return self._content

    def __repr__(self) -> str:
        return f"UploadFile({self.filename!r}, {self.content_type!r}, {self.size} bytes)"


class FormData(Mapping[str, str]):
    """Immutable parsed form data.

    ``__getitem__`` returns the first value for a key (string fields only),
    ``get_list`` all of them. Uploaded files live under ``files``.
    """

    __slots__ = ("_data", "_files")

    def __init__(
        self,
        data: dict[str, list[str]] | None = None,
        files: dict[str, UploadFile] | None = None,
    ) -> None:
        normalized: dict[str, list[str]] = {}
        for key, values in (data or {}).items():
            normalized.setdefault(key[:-2] if key.endswith("[]") else key, []).extend(values)
        object.__setattr__(self, "_data", normalized)
        object.__setattr__(self, "_files", files or {})

    @property
    def files(self) -> Mapping[str, UploadFile]:
        """Uploaded files by field name."""
        return self._files

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
        return f"FormData({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._data.get(key)
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key* (checkboxes, multi-selects, ``path[]``)."""
        return list(self._data.get(key, []))


def is_form_content_type(content_type: str | None) -> bool:
    """True if *content_type* names a form encoding ``parse_form_data`` handles."""
    if not content_type:
        return False
    return content_type.lower().split(";")[0].strip() in FORM_CONTENT_TYPES


async def parse_form_data(body: bytes, content_type: str) -> FormData:
    """Parse a form body into FormData.

    Raises:
        ValueError: If the content type is not a supported form encoding.
    """
    ct_lower = content_type.lower().split(";")[0].strip()

    if ct_lower == "application/x-www-form-urlencoded":
        return FormData(parse_qs(body.decode("utf-8"), keep_blank_values=True))

    if ct_lower == "multipart/form-data":
        return _parse_multipart(body, content_type)

    msg = f"Unsupported form content type: {content_type!r}"
    raise ValueError(msg)


def _parse_multipart(body: bytes, content_type: str) -> FormData:
    """Parse multipart form data using python-multipart."""
    _, options = parse_options_header(content_type.encode("latin-1"))
    boundary = options.get(b"boundary")
    if boundary is None:
        msg = "Multipart form data missing boundary parameter"
        raise ValueError(msg)

    data: dict[str, list[str]] = {}
    files: dict[str, UploadFile] = {}
    part: dict[str, Any] = {}

    def on_part_begin() -> None:
        part.clear()
        part.update(headers={}, data=bytearray(), name=None, filename=None)

    def on_part_data(chunk: bytes, start: int, end: int) -> None:
        part["data"].extend(chunk[start:end])

    def on_part_end() -> None:
        name = part.get("name")
        if name is None:
            return
        content = bytes(part["data"])
        if part["filename"] is not None:
            files[name] = UploadFile(
                filename=part["filename"],
                content_type=part["headers"].get("content-type", "application/octet-stream"),
                size=len(content),
                _content=content,
            )
        else:
            data.setdefault(name, []).append(content.decode("utf-8", errors="replace"))

    def on_header_field(chunk: bytes, start: int, end: int) -> None:
        part["pending"] = chunk[start:end].decode("latin-1").lower()

    def on_header_value(chunk: bytes, start: int, end: int) -> None:
        field = part.pop("pending", "")
        value = chunk[start:end].decode("latin-1")
        part["headers"][field] = value
        if field == "content-disposition":
            _, params = parse_options_header(value.encode("latin-1"))
            if (name := params.get(b"name")) is not None:
                part["name"] = name.decode("utf-8")
            if (filename := params.get(b"filename")) is not None:
                part["filename"] = filename.decode("utf-8")

    parser = MultipartParser(
        boundary,
        {
            "on_part_begin": on_part_begin,
            "on_part_data": on_part_data,
            "on_part_end": on_part_end,
            "on_header_field": on_header_field,
            "on_header_value": on_header_value,
        },
    )
    parser.write(body)
    parser.finalize()
    return FormData(data, files)
