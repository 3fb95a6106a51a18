"""Tests for URL, validity and expiry validation."""

from datetime import datetime, timedelta, timezone

import pytest

from url_shortener.core.exceptions import InvalidURLError, InvalidValidityError
from url_shortener.core.validators import (
    DEFAULT_VALIDITY_MINUTES,
    MAX_VALIDITY_MINUTES,
    calculate_expiry,
    ensure_utc,
    is_expired,
    sanitize_short_code,
    validate_url,
    validate_validity,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestURLValidation:
    """Test validate_url()."""

    def test_valid_urls(self):
        valid_urls = [
            "http://example.com",
            "https://example.com",
            "https://www.example.com/path/to/page",
            "http://subdomain.example.com:8080/path?query=value",
            "HTTPS://Example.com/Case",
            "https://8.8.8.8/dns",
        ]
        for url in valid_urls:
            assert validate_url(url) == url, f"Should be valid: {url}"

    def test_scheme_is_prepended_when_missing(self):
        assert validate_url("example.com/page") == "https://example.com/page"
        assert validate_url("  www.example.org  ") == "https://www.example.org"

    @pytest.mark.parametrize("host", [
        "localhost",
        "127.0.0.1",
        "10.0.0.1",
        "192.168.1.1",
        "172.20.0.1",
        "169.254.1.1",
        "[::1]",
        "0.0.0.0",
        "127.1",
        "10.1",
        "192.168.1",
        "0177.0.0.1",
        "0x7f.0.0.1",
        "0x7f000001",
        "2130706433",
        "localhost.",
        "LOCALHOST",
        "app.localhost",
        "127.0.0.1.",
    ])
    def test_private_and_local_hosts_rejected(self, host):
        with pytest.raises(InvalidURLError) as exc_info:
            validate_url(f"http://{host}/admin")
        assert "private networks" in exc_info.value.reason

    def test_private_host_without_scheme_rejected(self):
        with pytest.raises(InvalidURLError):
            validate_url("192.168.0.10:8080/router")

    def test_public_neighbours_of_private_ranges_allowed(self):
        assert validate_url("http://172.32.0.1/") == "http://172.32.0.1/"
        assert validate_url("http://11.0.0.1/") == "http://11.0.0.1/"
        assert validate_url("http://localhost.example.com/") == "http://localhost.example.com/"
        assert validate_url("http://8.8.8.8./") == "http://8.8.8.8./"

    @pytest.mark.parametrize("url", [
        "ftp://example.com",
        "file:///etc/passwd",
        "javascript:alert(1)",
        "data:text/html,hello",
        "mailto:someone@example.com",
    ])
    def test_disallowed_schemes_rejected(self, url):
        with pytest.raises(InvalidURLError) as exc_info:
            validate_url(url)
        assert exc_info.value.reason in (
            "Only HTTP and HTTPS protocols are allowed",
            "Invalid URL format",
        )

    @pytest.mark.parametrize("url", [
        "",
        None,
        123,
        "http://",
        "not-a-url",
        "https://exa mple.com",
        "https://example.com:notaport/",
    ])
    def test_malformed_urls_rejected(self, url):
        with pytest.raises(InvalidURLError):
            validate_url(url)

    def test_length_limit(self):
        base = "https://example.com/"
        at_limit = base + "a" * (2048 - len(base))
        assert validate_url(at_limit) == at_limit

        with pytest.raises(InvalidURLError) as exc_info:
            validate_url(at_limit + "a")
        assert "2048" in exc_info.value.reason

    def test_length_limit_applies_after_scheme_is_added(self):
        bare = "example.com/" + "a" * (2048 - len("example.com/"))
        with pytest.raises(InvalidURLError):
            validate_url(bare)


class TestValidity:
    """Test validate_validity()."""

    def test_default_when_omitted(self):
        assert validate_validity() == DEFAULT_VALIDITY_MINUTES == 30
        assert validate_validity(None) == 30

    @pytest.mark.parametrize("minutes", [1, 2, 30, 1440, MAX_VALIDITY_MINUTES - 1, MAX_VALIDITY_MINUTES])
    def test_in_range(self, minutes):
        assert validate_validity(minutes) == minutes

    @pytest.mark.parametrize("minutes", [0, -5, MAX_VALIDITY_MINUTES + 1])
    def test_out_of_range_rejected_not_clamped(self, minutes):
        with pytest.raises(InvalidValidityError):
            validate_validity(minutes)

    def test_integral_float_accepted(self):
        assert validate_validity(15.0) == 15

    @pytest.mark.parametrize("minutes", [1.5, "30", True, [30]])
    def test_non_integer_rejected(self, minutes):
        with pytest.raises(InvalidValidityError):
            validate_validity(minutes)


class TestExpiry:
    """Test calculate_expiry() and is_expired()."""

    def test_calculate_expiry(self):
        assert calculate_expiry(30, NOW) == NOW + timedelta(minutes=30)

    def test_expiry_boundaries(self):
        expires_at = calculate_expiry(10, NOW)
        assert not is_expired(expires_at, NOW + timedelta(minutes=9))
        assert not is_expired(expires_at, expires_at)  # equality is not expired
        assert is_expired(expires_at, expires_at + timedelta(microseconds=1))
        assert is_expired(expires_at, NOW + timedelta(minutes=11))

    def test_naive_timestamps_are_treated_as_utc(self):
        naive = datetime(2026, 1, 1, 12, 0)
        assert ensure_utc(naive) == NOW
        assert not is_expired(naive, NOW)
        assert is_expired(naive, NOW + timedelta(seconds=1))


class TestSanitizeShortCode:

    def test_valid_codes(self):
        assert sanitize_short_code("abc123") == "abc123"
        assert sanitize_short_code(" AbC ") == "AbC"

    @pytest.mark.parametrize("code", ["", "   ", "a-b", "../etc", "a" * 21, None])
    def test_invalid_codes(self, code):
        assert sanitize_short_code(code) is None
