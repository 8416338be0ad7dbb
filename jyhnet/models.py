# Copyright 2025 jiangyouhua
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Payload models and decoders for JYHNet.

A decoder is any callable taking the parsed JSON value and returning a typed
value. Decoders signal a schema mismatch by raising ValueError, TypeError or
KeyError; the client reports those as PARSING_FAILED.

This module ships the envelope used by the example backend:

    {"Status": 0, "Data": [{"id": "1", "name": "Math", "info": "desc"}]}

which decodes with ``Back.decoder(Category)`` into
``Back(status=0, data=[Category(id="1", name="Math", info="desc", ...)])``.

Note:
    ``Back.status != 0`` is an application-level failure; the transport
    layer still reports Success. Callers must check both.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")

Decoder = Callable[[Any], T]


def _optional_str(record: dict[str, Any], key: str) -> str | None:
    value = record.get(key)
    if value is not None and not isinstance(value, str):
        raise TypeError(f"field {key!r} must be a string, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class Category:
    """A category record; every field is an optional string."""

    id: str | None = None
    name: str | None = None
    info: str | None = None
    rank: str | None = None
    sequence: str | None = None
    progress: str | None = None
    collect: str | None = None
    understand: str | None = None
    status: str | None = None

    @classmethod
    def from_dict(cls, record: Any) -> Category:
        """Decode one record; unknown keys are ignored."""
        if not isinstance(record, dict):
            raise TypeError(f"category must be an object, got {type(record).__name__}")
        return cls(**{f.name: _optional_str(record, f.name) for f in fields(cls)})


@dataclass(frozen=True)
class Back(Generic[T]):
    """
    Application envelope.

    Attributes:
        status: 0 on success, anything else is an application error.
        data: The decoded records.
    """

    status: int
    data: list[T]

    @property
    def ok(self) -> bool:
        return self.status == 0

    @classmethod
    def from_dict(cls, payload: Any, item: Decoder[T]) -> Back[T]:
        if not isinstance(payload, dict):
            raise TypeError(f"envelope must be an object, got {type(payload).__name__}")
        status = payload["Status"]
        if isinstance(status, bool) or not isinstance(status, int):
            raise TypeError(f"'Status' must be an integer, got {status!r}")
        data = payload["Data"]
        if not isinstance(data, list):
            raise TypeError(f"'Data' must be an array, got {type(data).__name__}")
        return cls(status=status, data=[item(entry) for entry in data])

    @classmethod
    def decoder(cls, item: Decoder[T] | type) -> Decoder[Back[T]]:
        """Build a decoder for ``Back`` wrapping ``item`` records.

        Args:
            item: A decoder callable, or a class exposing ``from_dict``.
        """
        item_decoder = getattr(item, "from_dict", item)

        def decode(payload: Any) -> Back[T]:
            return cls.from_dict(payload, item_decoder)

        return decode
