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
Request construction for JYHNet.

Turns an address plus a parameter mapping into a ``requests.PreparedRequest``
or raises NetError(INVALID_URL). Nothing here touches the network.

- GET: parameters are appended to the URL as query items. Existing query
  items in the address are kept.
- POST: parameters are serialized as a JSON body with
  ``Content-Type: application/json``. Parameters that cannot be serialized
  make the request unbuildable, which is reported as INVALID_URL.

Query values are stringified: booleans as ``true``/``false``, None as an
empty string, everything else through ``str()``.
"""

from __future__ import annotations

import json
from typing import Any, Mapping
from urllib.parse import urlsplit

import requests

from jyhnet.exceptions import NetError, NetErrorKind

ALLOWED_SCHEMES = ("http", "https")


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def validate_address(address: str) -> str:
    """Return the address if it is a usable http(s) URL.

    Raises:
        NetError: INVALID_URL when the address is empty, contains whitespace,
            uses another scheme or has no host.
    """
    if not isinstance(address, str) or not address or address != address.strip():
        raise NetError(NetErrorKind.INVALID_URL, str(address))
    if any(ch.isspace() for ch in address):
        raise NetError(NetErrorKind.INVALID_URL, address)
    try:
        parts = urlsplit(address)
        # Accessing port validates it (ValueError on garbage like ":abc").
        parts.port
    except ValueError as err:
        raise NetError(NetErrorKind.INVALID_URL, address, cause=err) from err
    if parts.scheme.lower() not in ALLOWED_SCHEMES or not parts.hostname:
        raise NetError(NetErrorKind.INVALID_URL, address)
    return address


def _prepare(request: requests.Request, address: str) -> requests.PreparedRequest:
    try:
        return request.prepare()
    except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema) as err:
        raise NetError(NetErrorKind.INVALID_URL, address, cause=err) from err


def build_get_request(
    address: str,
    params: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> requests.PreparedRequest:
    """Build a GET request with params appended as query items."""
    validate_address(address)
    query = None
    if params:
        query = [(str(key), _stringify(value)) for key, value in params.items()]
    request = requests.Request(
        "GET", address, params=query, headers=dict(headers or {})
    )
    return _prepare(request, address)


def build_post_request(
    address: str,
    params: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> requests.PreparedRequest:
    """Build a POST request with params serialized as a JSON body."""
    validate_address(address)
    all_headers = dict(headers or {})
    body = None
    if params is not None:
        try:
            body = json.dumps(dict(params)).encode("utf-8")
        except (TypeError, ValueError) as err:
            raise NetError(NetErrorKind.INVALID_URL, address, cause=err) from err
        all_headers["Content-Type"] = "application/json"
    request = requests.Request("POST", address, data=body, headers=all_headers)
    return _prepare(request, address)


def build_request(
    method: str,
    address: str,
    params: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> requests.PreparedRequest:
    """Dispatch to the builder for ``method`` (GET or POST)."""
    method = method.upper()
    if method == "GET":
        return build_get_request(address, params, headers)
    if method == "POST":
        return build_post_request(address, params, headers)
    raise ValueError(f"Invalid method: {method!r}. Must be 'GET' or 'POST'")
