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
Local network reachability check for JYHNet.

The client runs this check before every request so an offline device fails
fast with NO_NETWORK instead of waiting for a transport timeout. The check
never leaves the machine: it asks the operating system which local address
it would use to reach a probe address, by "connecting" a UDP socket. UDP
connect only consults the routing table, so no packet is sent.

Interpretation of the chosen route:

- No route (OSError such as ENETUNREACH) -> not reachable
- Unspecified local address (0.0.0.0 / ::) -> not reachable
- Link-local local address (169.254.0.0/16, fe80::/10) -> reachable, but a
  connection is still required (the interface has no routable lease yet)
- Anything else -> reachable

Example:
    >>> from jyhnet.reachability import Reachability
    >>> Reachability().have_network()
    True
"""

from __future__ import annotations

from dataclasses import dataclass
import ipaddress
import socket

from jyhnet.config.loader import DEFAULT_PROBE_HOST, DEFAULT_PROBE_PORT


@dataclass(frozen=True)
class ReachabilityStatus:
    """
    Snapshot of the default route.

    Attributes:
        reachable: A route to the probe address exists.
        connection_required: The route exists but the interface is not yet
            usable (link-local address only).
        local_address: Local address the OS picked, or None without a route.
    """

    reachable: bool
    connection_required: bool
    local_address: str | None


class Reachability:
    """Default-route reachability probe."""

    def __init__(
        self, host: str = DEFAULT_PROBE_HOST, port: int = DEFAULT_PROBE_PORT
    ) -> None:
        self.host = host
        self.port = port

    def _family(self) -> socket.AddressFamily:
        try:
            version = ipaddress.ip_address(self.host).version
        except ValueError:
            return socket.AF_INET
        return socket.AF_INET6 if version == 6 else socket.AF_INET

    def _local_address(self) -> str | None:
        """Return the local address routed towards the probe, or None."""
        try:
            with socket.socket(self._family(), socket.SOCK_DGRAM) as sock:
                sock.connect((self.host, self.port))
                return sock.getsockname()[0]
        except OSError:
            return None

    def status(self) -> ReachabilityStatus:
        local = self._local_address()
        if local is None:
            return ReachabilityStatus(False, False, None)

        try:
            addr = ipaddress.ip_address(local.split("%", 1)[0])
        except ValueError:
            return ReachabilityStatus(False, False, local)

        if addr.is_unspecified:
            return ReachabilityStatus(False, False, local)
        if addr.is_link_local:
            return ReachabilityStatus(True, True, local)
        return ReachabilityStatus(True, False, local)

    def have_network(self) -> bool:
        """True when a usable default route exists."""
        status = self.status()
        return status.reachable and not status.connection_required
