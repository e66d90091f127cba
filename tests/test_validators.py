"""Tests for input validation and the redirect allowlist."""

import pytest

from streamhouse.core.validators import (
    MAX_URL_LENGTH,
    is_allowed,
    is_valid_url,
    sanitize_identifier,
)


class TestURLValidation:
    """Test URL validation function."""
    
    def test_valid_urls(self):
        valid_urls = [
            "http://example.com",
            "https://example.com",
            "https://www.example.com/path/to/page",
            "http://subdomain.example.com:8080/path?query=value",
            "http://localhost:8000/x",
        ]
        for url in valid_urls:
            assert is_valid_url(url), f"Should be valid: {url}"
    
    def test_invalid_urls(self):
        invalid_urls = [
            "not-a-url",
            "ftp://example.com",  # FTP not supported
            "javascript:alert(1)",
            "example.com",  # Missing scheme
            "",
            "http://",  # Missing domain
            "http://intranet/x",  # No dot in host
        ]
        for url in invalid_urls:
            assert not is_valid_url(url), f"Should be invalid: {url}"
    
    def test_length_limit(self):
        base = "https://example.com/"
        assert is_valid_url(base + "a" * (MAX_URL_LENGTH - len(base)))
        assert not is_valid_url(base + "a" * (MAX_URL_LENGTH - len(base) + 1))


class TestAllowlist:
    
    allowlist = {"tiktok.com", "youtube.com"}
    
    def test_subdomain_matches(self):
        assert is_allowed("https://vm.tiktok.com/x", {"tiktok.com"})
    
    def test_suffix_without_dot_does_not_match(self):
        assert not is_allowed("https://nottiktok.com/x", {"tiktok.com"})
    
    def test_exact_host_matches(self):
        assert is_allowed("https://youtube.com/watch?v=a", self.allowlist)
    
    def test_host_is_case_insensitive(self):
        assert is_allowed("https://WWW.YouTube.COM/watch?v=a", self.allowlist)
        assert is_allowed("https://www.youtube.com/", {"YouTube.com"})
    
    def test_userinfo_cannot_spoof_host(self):
        assert not is_allowed("https://youtube.com@evil.example/", self.allowlist)
    
    @pytest.mark.parametrize("url", ["", "not a url", "http://[::1", "https:///path"])
    def test_malformed_urls_rejected(self, url):
        assert not is_allowed(url, self.allowlist)
    
    def test_empty_allowlist_rejects_everything(self):
        assert not is_allowed("https://www.youtube.com/", set())


class TestSanitizeIdentifier:
    
    def test_uuid_accepted(self):
        assert sanitize_identifier(" 0b7c9a1e-2f4d-4a7b-9c1e-1234567890ab ") == "0b7c9a1e-2f4d-4a7b-9c1e-1234567890ab"
    
    @pytest.mark.parametrize("value", [None, "", "../etc/passwd", "a b", "x" * 65])
    def test_rejected(self, value):
        assert sanitize_identifier(value) is None
