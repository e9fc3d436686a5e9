from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone

import pytest

from copytrip.core.errors import SigningConfigError
from copytrip.core.travelpayouts.config import TravelpayoutsConfig
from copytrip.core.travelpayouts.signing import (
    RequestSigner,
    collect_values_in_order,
    format_instant,
    make_signature,
    stringify_primitive,
)


def _md5(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()


def test_signature_matches_reference_digest() -> None:
    assert make_signature("TOK", {"x": "a", "y": ["b", "c"]}) == _md5("TOK:a:b:c")


def test_signature_ignores_key_insertion_order() -> None:
    assert make_signature("TOK", {"a": 1, "b": 2}) == make_signature("TOK", {"b": 2, "a": 1})
    assert make_signature("TOK", {"outer": {"z": 1, "y": 2}}) == make_signature("TOK", {"outer": {"y": 2, "z": 1}})


def test_signature_is_sensitive_to_sequence_order() -> None:
    assert make_signature("TOK", {"list": [1, 2]}) != make_signature("TOK", {"list": [2, 1]})


def test_signature_key_is_excluded() -> None:
    payload = {"marker": "m1", "search_id": "abc"}
    with_signature = {**payload, "signature": "deadbeef"}

    assert make_signature("TOK", with_signature) == make_signature("TOK", payload)


def test_collect_values_walks_nested_structures() -> None:
    payload = {
        "marker": "123",
        "search_params": {
            "trip_class": "Y",
            "passengers": {"adults": 1, "children": 0, "infants": 0},
            "directions": [
                {"origin": "OSL", "destination": "BKK", "date": "2026-01-10"},
                {"origin": "BKK", "destination": "OSL", "date": "2026-01-24"},
            ],
        },
        "locale": "no",
    }

    assert collect_values_in_order(payload) == [
        "no",
        "123",
        "2026-01-10",
        "BKK",
        "OSL",
        "2026-01-24",
        "OSL",
        "BKK",
        "1",
        "0",
        "0",
        "Y",
    ]


def test_collect_values_skips_none_everywhere() -> None:
    assert collect_values_in_order({"a": None, "b": [None, "x"], "c": {"d": None}}) == ["x"]
    assert collect_values_in_order(None) == []


def test_collect_values_formats_datetimes_as_utc_instants() -> None:
    local = datetime(2026, 5, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert collect_values_in_order({"at": local}) == ["2026-05-01T10:00:00.000Z"]


def test_format_instant_treats_naive_as_utc_and_keeps_milliseconds() -> None:
    assert format_instant(datetime(2026, 5, 1, 10, 0, 0, 123456)) == "2026-05-01T10:00:00.123Z"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (True, "true"),
        (False, "false"),
        (0, "0"),
        (42, "42"),
        (1.0, "1"),
        (2.5, "2.5"),
        ("NOK", "NOK"),
    ],
)
def test_stringify_primitive(value: object, expected: str) -> None:
    assert stringify_primitive(value) == expected


def test_locale_collation_orders_case_insensitively_first() -> None:
    payload = {"B": "upper-b", "a": "lower-a"}

    assert collect_values_in_order(payload, collation="locale") == ["lower-a", "upper-b"]
    assert collect_values_in_order(payload, collation="codepoint") == ["upper-b", "lower-a"]


def test_collations_agree_on_lowercase_ascii_keys() -> None:
    payload = {"search_id": "s", "marker": "m", "last_update_timestamp": 0}

    assert collect_values_in_order(payload, collation="locale") == ["0", "m", "s"]
    assert make_signature("TOK", payload, collation="locale") == make_signature(
        "TOK", payload, collation="codepoint"
    )


def test_empty_token_still_signs_with_leading_delimiter() -> None:
    assert make_signature("", {"a": "1"}) == _md5(":1")


def _config(**overrides: object) -> TravelpayoutsConfig:
    values: dict[str, object] = {"token": "TOK", "marker": "m1", "real_host": "copytrip.example"}
    values.update(overrides)
    return TravelpayoutsConfig(**values)


def test_request_signer_uses_configured_token_and_collation() -> None:
    signer = RequestSigner(_config(key_collation="codepoint"))
    payload = {"B": "1", "a": "2"}

    assert signer.sign(payload) == _md5("TOK:1:2")


def test_signed_request_attaches_signature_to_body_and_headers() -> None:
    signer = RequestSigner(_config())
    payload = {"marker": "m1", "search_id": "abc", "signature": "stale"}

    body, headers = signer.signed_request(payload, client_ip="::ffff:192.0.2.1")

    expected = _md5("TOK:m1:abc")
    assert body == {"marker": "m1", "search_id": "abc", "signature": expected}
    assert headers["x-signature"] == expected
    assert headers["x-user-ip"] == "192.0.2.1"
    assert payload["signature"] == "stale"


def test_request_signer_headers_require_real_host() -> None:
    signer = RequestSigner(_config(real_host=""))
    with pytest.raises(SigningConfigError):
        signer.headers("sig")
