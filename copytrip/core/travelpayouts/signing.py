"""Travelpayouts request signatures.

The partner verifies every signed call by recomputing an MD5 digest over the
API token followed by every leaf value of the JSON body, joined with ``:``.
Leaf values are collected depth-first: mapping keys in sorted order (the
``signature`` key itself is skipped), sequences in their original order.
Any deviation from this ordering makes the remote side reject the request
without a useful error.
"""

from __future__ import annotations

import hashlib
import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from functools import lru_cache

from pyuca import Collator

from copytrip.core.travelpayouts.config import KeyCollation, TravelpayoutsConfig
from copytrip.core.travelpayouts.headers import build_headers

SIGNATURE_KEY = "signature"


@lru_cache(maxsize=1)
def _collator() -> Collator:
    return Collator()


def sort_keys(keys: Iterable[str], collation: KeyCollation = "locale") -> list[str]:
    if collation == "codepoint":
        return sorted(keys)
    collator = _collator()
    return sorted(keys, key=lambda key: (collator.sort_key(key), key))


def format_instant(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return f"{value:%Y-%m-%dT%H:%M:%S}.{value.microsecond // 1000:03d}Z"


def stringify_primitive(value: object) -> str:
    # Mirrors how the partner's reference client renders JSON scalars.
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def collect_values_in_order(
    payload: object,
    out: list[str] | None = None,
    *,
    collation: KeyCollation = "locale",
) -> list[str]:
    if out is None:
        out = []

    if payload is None:
        return out

    if isinstance(payload, datetime):
        out.append(format_instant(payload))
        return out

    if isinstance(payload, Mapping):
        keys = [str(key) for key in payload if str(key) != SIGNATURE_KEY]
        by_name = {str(key): value for key, value in payload.items()}
        for key in sort_keys(keys, collation):
            collect_values_in_order(by_name[key], out, collation=collation)
        return out

    if isinstance(payload, (list, tuple)):
        for item in payload:
            collect_values_in_order(item, out, collation=collation)
        return out

    out.append(stringify_primitive(payload))
    return out


def make_signature(token: str, payload: object, *, collation: KeyCollation = "locale") -> str:
    values = collect_values_in_order(payload, collation=collation)
    base = ":".join([str(token or ""), *values])
    return hashlib.md5(base.encode("utf-8")).hexdigest()


class RequestSigner:
    def __init__(self, config: TravelpayoutsConfig) -> None:
        self.config = config

    def sign(self, payload: Mapping[str, object]) -> str:
        return make_signature(self.config.token, payload, collation=self.config.key_collation)

    def headers(self, signature: str, client_ip: str | None = None) -> dict[str, str]:
        return build_headers(signature, self.config.real_host, self.config.token, client_ip)

    def signed_request(
        self,
        payload: Mapping[str, object],
        client_ip: str | None = None,
    ) -> tuple[dict[str, object], dict[str, str]]:
        """Return ``(body, headers)`` ready to POST, with ``signature`` in both."""
        signature = self.sign(payload)
        headers = self.headers(signature, client_ip)
        body = {key: value for key, value in payload.items() if key != SIGNATURE_KEY}
        body[SIGNATURE_KEY] = signature
        return body, headers
