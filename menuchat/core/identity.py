"""Client identification: derive a stable per-client key."""

from typing import Mapping

from menuchat.core.config import CLIENT_ID_MIN_LEN


def client_key(client_id: str | None, ip: str | None) -> str:
    """
    Prefer the client-supplied token when it is long enough to be meaningful,
    otherwise fall back to the network address.
    """
    if client_id and isinstance(client_id, str) and len(client_id) >= CLIENT_ID_MIN_LEN:
        return f"cid:{client_id}"
    return f"ip:{ip or 'unknown'}"


def client_address(headers: Mapping[str, str], peer: str | None) -> str:
    """First hop of X-Forwarded-For when behind a proxy, else the socket peer."""
    forwarded = (headers.get("x-forwarded-for") or "").split(",")[0].strip()
    return forwarded or (peer or "")
