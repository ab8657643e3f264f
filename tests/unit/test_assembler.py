"""
tests/unit/test_assembler.py
Whole-document runs through validate_and_format().
"""
from datetime import datetime, timezone

import httpx
import pytest

from securitytxt.base.exceptions import MissingMandatoryFieldError
from securitytxt.engine.assembler import normalize_output, validate_and_format
from securitytxt.engine.models import RunConfig
from securitytxt.errors import ErrorCode
from securitytxt.net.adapter import HttpxFetcher

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)
CANONICAL = "https://example.com/.well-known/security.txt"
POLICY = "https://example.com/policy"
KEY_FPR = "0123456789ABCDEF0123456789ABCDEF01234567"
OTHER_FPR = "FEDCBA9876543210FEDCBA9876543210FEDCBA98"


@pytest.fixture
def config():
    return RunConfig(now=NOW, max_age_days=364)


@pytest.fixture
def fetcher(make_fetcher):
    return make_fetcher({CANONICAL: 200, POLICY: 200})


def test_end_to_end_duplicate_languages_and_missing_expires(config, fetcher):
    document = (
        "Contact: mailto:security@example.com\n"
        "Preferred-Languages: en, fi\n"
        "Preferred-Languages: en fi!\n"
    )
    report = validate_and_format(document, config, fetcher=fetcher)
    assert report.document == (
        "Contact: mailto:security@example.com\n"
        "Preferred-Languages: en, fi\n"
        "Expires: 2024-12-30T00:00:00Z\n"
    )
    assert report.expires == "2024-12-30T00:00:00Z"
    assert "ADDED MISSING MANDATORY EXPIRES FIELD." in report.warnings
    assert report.errors == ["REMOVED (INVALID LANGUAGES): Preferred-Languages: en fi!"]


def test_missing_contact_fails(config, fetcher):
    document = f"# no contact here\nCanonical: {CANONICAL}\nExpires: 2030-01-01T00:00:00Z\n"
    with pytest.raises(MissingMandatoryFieldError) as exc_info:
        validate_and_format(document, config, fetcher=fetcher)
    assert exc_info.value.missing_field == "Contact"
    assert exc_info.value.code == ErrorCode.DOC_MISSING_MANDATORY_FIELD


def test_contact_removed_by_filtering_fails(config, fetcher):
    document = "Contact: mailto:not-an-address\nContact: https://unreachable.example\n"
    with pytest.raises(MissingMandatoryFieldError) as exc_info:
        validate_and_format(document, config, fetcher=fetcher)
    assert len(exc_info.value.errors) == 2


def test_only_first_expires_survives_and_is_rewritten(config, fetcher):
    document = (
        "Expires: 2025-05-05T00:00:00Z\n"
        "Contact: mailto:security@example.com\n"
        "Expires: 2026-06-06T00:00:00Z\n"
    )
    report = validate_and_format(document, config, fetcher=fetcher)
    assert report.document == (
        "Expires: 2024-12-30T00:00:00Z\n"
        "Contact: mailto:security@example.com\n"
    )
    assert report.document.count("Expires:") == 1
    assert "ADDED MISSING MANDATORY EXPIRES FIELD." not in report.warnings


def test_blank_lines_are_collapsed_and_trimmed(config, fetcher):
    document = (
        "\n\n"
        "# header\n"
        "\n\n\n"
        "Contact: mailto:security@example.com\n"
        "garbage line\n"
        "\n"
        "\n"
        "Expires: 2025-01-01T00:00:00Z\n"
        "\n\n"
    )
    report = validate_and_format(document, config, fetcher=fetcher)
    assert report.document == (
        "# header\n"
        "\n"
        "Contact: mailto:security@example.com\n"
        "\n"
        "Expires: 2024-12-30T00:00:00Z\n"
    )
    assert "\n\n\n" not in report.document
    assert report.document.endswith("\n") and not report.document.endswith("\n\n")


def test_missing_trailing_newline_and_crlf(config, fetcher):
    document = "Contact: mailto:security@example.com\r\nExpires: 2025-01-01T00:00:00Z"
    report = validate_and_format(document, config, fetcher=fetcher)
    assert report.document == "Contact: mailto:security@example.com\nExpires: 2024-12-30T00:00:00Z\n"


def test_field_name_case_is_preserved(config, fetcher):
    report = validate_and_format("contact: tel:+1 555 123\n", config, fetcher=fetcher)
    assert report.document.startswith("contact: tel:+1-555-123\n")
    assert any("RFC 3966" in w for w in report.warnings)


def test_canonical_advisory(config, fetcher):
    without = validate_and_format("Contact: mailto:security@example.com\n", config, fetcher=fetcher)
    assert "WARNING! VALID RECOMMENDED CANONICAL FIELD IS MISSING." in without.warnings

    with_canonical = validate_and_format(
        f"Contact: mailto:security@example.com\nCanonical: {CANONICAL}\n", config, fetcher=fetcher
    )
    assert "WARNING! VALID RECOMMENDED CANONICAL FIELD IS MISSING." not in with_canonical.warnings


def test_output_is_idempotent(config, fetcher):
    document = (
        "# Security contacts\n"
        "Contact: mailto:security@example.com\n"
        "Contact: tel:+1 555 123 4567\n"
        "\n\n"
        f"Canonical: {CANONICAL}\n"
        f"Policy: {POLICY}\n"
        "Policy: http://example.com/insecure\n"
        "Preferred-Languages: en\n"
    )
    first = validate_and_format(document, config, fetcher=fetcher)
    second = validate_and_format(first.document, config, fetcher=fetcher)
    assert second.document == first.document
    assert second.errors == []


def test_clearsigned_input_is_unwrapped(config, fetcher):
    document = (
        "-----BEGIN PGP SIGNED MESSAGE-----\n"
        "Hash: SHA512\n"
        "\n"
        "Contact: mailto:security@example.com\n"
        "Expires: 2024-06-01T00:00:00Z\n"
        "-----BEGIN PGP SIGNATURE-----\n"
        "\n"
        "iHUEARYKAB0WIQTq\n"
        "=abcd\n"
        "-----END PGP SIGNATURE-----\n"
    )
    report = validate_and_format(document, config, fetcher=fetcher)
    assert report.document == "Contact: mailto:security@example.com\nExpires: 2024-12-30T00:00:00Z\n"
    assert report.errors == []
    assert any("PGP SIGNATURE" in w for w in report.warnings)


def test_key_expiry_caps_expires(fetcher):
    config = RunConfig(
        now=NOW,
        key_fingerprint=KEY_FPR,
        key_expiry=datetime(2024, 6, 1, tzinfo=timezone.utc),
    )
    report = validate_and_format("Contact: mailto:security@example.com\n", config, fetcher=fetcher)
    assert report.expires == "2024-06-01T00:00:00Z"
    assert report.document.endswith("Expires: 2024-06-01T00:00:00Z\n")


def test_fingerprint_mismatch_is_advisory(fetcher):
    config = RunConfig(now=NOW, key_fingerprint=KEY_FPR)
    document = f"Contact: mailto:security@example.com\nEncryption: openpgp4fpr:{OTHER_FPR}\n"
    report = validate_and_format(document, config, fetcher=fetcher)
    assert f"Encryption: openpgp4fpr:{OTHER_FPR}\n" in report.document
    assert any("DO NOT MATCH" in w for w in report.warnings)
    assert report.errors == []


def test_prefetch_requests_each_url_once(make_fetcher):
    fetcher = make_fetcher({POLICY: 200})
    config = RunConfig(now=NOW, fetch_workers=4)
    document = (
        "Contact: mailto:security@example.com\n"
        f"Policy: {POLICY}\n"
        f"Policy: {POLICY}\n"
        f"Contact: {POLICY}\n"
    )
    report = validate_and_format(document, config, fetcher=fetcher)
    assert report.document.count(f"Policy: {POLICY}") == 2
    assert fetcher.status_calls == [POLICY]


def test_output_preserves_input_order(config, fetcher):
    document = (
        f"Policy: {POLICY}\n"
        "# a comment\n"
        "Contact: mailto:b@example.com\n"
        "Contact: mailto:a@example.com\n"
    )
    report = validate_and_format(document, config, fetcher=fetcher)
    assert report.document.splitlines()[:4] == [
        f"Policy: {POLICY}",
        "# a comment",
        "Contact: mailto:b@example.com",
        "Contact: mailto:a@example.com",
    ]


def test_normalize_output():
    assert normalize_output([]) == ""
    assert normalize_output(["", ""]) == ""
    assert normalize_output(["a", "", "", "b", ""]) == "a\n\nb\n"


def test_malformed_https_url_drops_only_that_line(config):
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    document = (
        "Contact: mailto:security@example.com\n"
        "Policy: https://example.com:abc/policy\n"
        f"Policy: {POLICY}\n"
    )
    with HttpxFetcher(client=client) as fetcher:
        report = validate_and_format(document, config, fetcher=fetcher)
    assert report.document.splitlines() == [
        "Contact: mailto:security@example.com",
        f"Policy: {POLICY}",
        "Expires: 2024-12-30T00:00:00Z",
    ]
    assert report.errors == ["REMOVED (URL NOT WORKING): Policy: https://example.com:abc/policy"]
