from __future__ import annotations

import re
from collections.abc import Mapping

from fastapi import Request

from copytrip.core.errors import SigningConfigError

_MAPPED_V4_PREFIX = re.compile(r"^::ffff:", re.IGNORECASE)
_BRACKETED = re.compile(r"^\[([^\]]+)\](?::\d+)?$")
_V4_WITH_PORT = re.compile(r"^(\d{1,3}(?:\.\d{1,3}){3}):\d+$")


def normalize_ip(ip: str | None) -> str:
    if not ip:
        return ""

    value = _MAPPED_V4_PREFIX.sub("", str(ip).strip())

    bracketed = _BRACKETED.match(value)
    if bracketed:
        return bracketed.group(1)

    with_port = _V4_WITH_PORT.match(value)
    if with_port:
        return with_port.group(1)

    return value


def get_client_ip(headers: Mapping[str, str], fallback: str | None = None) -> str:
    """First hop of ``X-Forwarded-For``, then ``X-Real-IP``, then ``fallback``.

    ``headers`` must be case-insensitive or lower-cased (Starlette's
    ``Headers`` is both).
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        return str(forwarded_for).split(",")[0].strip()

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return str(real_ip).strip()

    return str(fallback or "").strip()


def client_ip_from_request(request: Request) -> str:
    peer = request.client.host if request.client else None
    return normalize_ip(get_client_ip(request.headers, peer))


def build_headers(
    signature: str | None,
    real_host: str,
    token: str,
    client_ip: str | None = None,
) -> dict[str, str]:
    if not token or not real_host:
        raise SigningConfigError("Travelpayouts headers: missing token/real host")

    headers = {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "x-affiliate-user-id": str(token),
        "x-real-host": str(real_host),
    }

    # Only click lookups go out unsigned.
    if signature:
        headers["x-signature"] = str(signature)

    ip = normalize_ip(client_ip)
    if ip:
        headers["x-user-ip"] = ip

    return headers
