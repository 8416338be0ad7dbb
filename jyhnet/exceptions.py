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

"""Exception hierarchy and error classification for JYHNet.

Request outcomes never raise across the client boundary: every failure is
classified into a NetErrorKind and delivered as a NetError inside a
Failure result. Exceptions are raised only for misuse that the caller can
fix up front, such as an invalid configuration.

- JYHNetError: Base class for everything this package raises.
- ConfigError: Invalid configuration values, unreadable or malformed YAML.
- NetError: A classified request failure (carried, not raised, by the client).

Example:
    Inspecting a failure:
        ```python
        from jyhnet.exceptions import NetErrorKind

        def on_done(result):
            if result.is_failure and result.error.kind is NetErrorKind.RESPONSE_ERROR:
                print(f"server answered {result.error.status_code}")
        ```
"""

from __future__ import annotations

from enum import Enum

__all__ = [
    "JYHNetError",
    "ConfigError",
    "NetErrorKind",
    "NetError",
]


class JYHNetError(Exception):
    """Base exception for all JYHNet errors."""

    pass


class ConfigError(JYHNetError):
    """Raised for configuration-related errors.

    This exception is raised when there are problems with:

    - YAML parsing (syntax errors, non-mapping documents)
    - Unknown configuration keys
    - Invalid values (non-positive timeout, bad probe port, ...)
    """

    pass


class NetErrorKind(Enum):
    """Classification of a failed request."""

    NO_NETWORK = "no_network"
    INVALID_URL = "invalid_url"
    REQUEST_ERROR = "request_error"
    INVALID_RESPONSE = "invalid_response"
    RESPONSE_ERROR = "response_error"
    EMPTY_DATA = "empty_data"
    PARSING_FAILED = "parsing_failed"
    CANCELLED = "cancelled"


_DESCRIPTIONS = {
    NetErrorKind.NO_NETWORK: "no network connection",
    NetErrorKind.INVALID_URL: "invalid URL",
    NetErrorKind.REQUEST_ERROR: "request failed",
    NetErrorKind.INVALID_RESPONSE: "invalid HTTP response",
    NetErrorKind.RESPONSE_ERROR: "unexpected HTTP status",
    NetErrorKind.EMPTY_DATA: "empty response",
    NetErrorKind.PARSING_FAILED: "could not decode response",
    NetErrorKind.CANCELLED: "request cancelled",
}


class NetError(JYHNetError):
    """A classified request failure.

    Attributes:
        kind: Which failure class this is.
        address: The address the request was made against, if known.
        status_code: HTTP status for RESPONSE_ERROR, otherwise None.
        cause: The underlying exception (transport, JSON, decoder), if any.
    """

    def __init__(
        self,
        kind: NetErrorKind,
        address: str | None = None,
        *,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.kind = kind
        self.address = address
        self.status_code = status_code
        self.cause = cause
        super().__init__(self._format())

    def _format(self) -> str:
        message = _DESCRIPTIONS[self.kind]
        if self.status_code is not None:
            message = f"{message}: {self.status_code}"
        if self.address:
            message = f"{message} ({self.address})"
        if self.cause is not None:
            message = f"{message}: {self.cause}"
        return message

    def __repr__(self) -> str:
        return (
            f"NetError(kind={self.kind.name}, address={self.address!r}, "
            f"status_code={self.status_code!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NetError):
            return NotImplemented
        return (
            self.kind is other.kind
            and self.address == other.address
            and self.status_code == other.status_code
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.address, self.status_code))
