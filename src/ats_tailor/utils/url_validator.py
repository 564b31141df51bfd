"""Job-posting URL guard.

Rejects URLs that point at internal or private network addresses before the
scraper fetches them. Hostnames are resolved here and again by the HTTP
client, so this does not stop DNS rebinding; use an egress proxy for that.
"""

from __future__ import annotations

import ipaddress
import socket
from urllib.parse import urlparse

from ats_tailor.errors import InvalidInput


class SSRFError(InvalidInput):
    """The URL resolves to a blocked (private/internal) address."""

    kind = "SSRFError"


_BLOCKED_HOSTNAMES = {"localhost", "localhost.localdomain"}

# Cloud metadata endpoints and addresses is_private does not cover
_BLOCKED_IPS = {
    ipaddress.ip_address("169.254.169.254"),
    ipaddress.ip_address("0.0.0.0"),
}


def _is_blocked(addr: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    return (
        addr in _BLOCKED_IPS
        or addr.is_private
        or addr.is_loopback
        or addr.is_reserved
        or addr.is_link_local
    )


def validate_url(url: str, *, resolve: bool = True) -> str:
    """Return ``url`` stripped if it is safe to fetch.

    Raises:
        InvalidInput: malformed URL, unsupported scheme or unresolvable host.
        SSRFError: the host is (or resolves to) an internal address.
    """
    url = (url or "").strip()
    parsed = urlparse(url)

    if parsed.scheme not in ("http", "https"):
        raise InvalidInput(f"Unsupported URL scheme: {parsed.scheme!r}")

    hostname = parsed.hostname
    if not hostname:
        raise InvalidInput(f"No hostname in URL: {url!r}")

    if hostname.lower() in _BLOCKED_HOSTNAMES:
        raise SSRFError(f"Blocked internal hostname: {hostname!r}")

    try:
        addr = ipaddress.ip_address(hostname)
    except ValueError:
        addr = None
    if addr is not None:
        if _is_blocked(addr):
            raise SSRFError(f"Blocked private/internal IP: {addr}")
        return url

    if not resolve:
        return url

    try:
        results = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as exc:
        raise InvalidInput(f"Cannot resolve hostname {hostname!r}: {exc}") from exc

    for _family, _type, _proto, _canonname, sockaddr in results:
        resolved = ipaddress.ip_address(sockaddr[0])
        if _is_blocked(resolved):
            raise SSRFError(f"Hostname {hostname!r} resolves to blocked address: {resolved}")

    return url
