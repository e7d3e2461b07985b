from __future__ import annotations

from typing import Mapping

GUEST_PREFIX = "guest_"
_IPV4_MAPPED_PREFIX = "::ffff:"


def resolve_identity(token: str | None, connection_id: str) -> str:
    """Return the client token, or a guest identity scoped to this connection."""
    if token is not None:
        token = token.strip()
        if token:
            return token
    return f"{GUEST_PREFIX}{connection_id}"


def is_guest(identity: str) -> bool:
    return identity.startswith(GUEST_PREFIX)


def normalize_address(address: str | None) -> str:
    if not address:
        return ""
    value = address.strip().lower()
    if value.startswith(_IPV4_MAPPED_PREFIX):
        value = value[len(_IPV4_MAPPED_PREFIX):]
    if value.startswith("[") and "]" in value:
        # [v6]:port
        return value[1:value.index("]")]
    if value.count(":") == 1:
        # v4:port
        value = value.split(":", 1)[0]
    return value


def origin_fingerprint(headers: Mapping[str, str], peer_host: str | None = None) -> str:
    """First hop of the forwarded-for chain, else the socket peer.

    Only a hint for host recovery: NAT and shared networks collide.
    """
    forwarded = headers.get("x-forwarded-for", "")
    if forwarded:
        first_hop = normalize_address(forwarded.split(",")[0])
        if first_hop:
            return first_hop
    return normalize_address(peer_host)
