"""Tests for URL normalization."""

import unittest

from leadscore.scraping.urls import extract_domain, normalize_url


class TestNormalizeUrl(unittest.TestCase):
    """Test canonicalization of raw URL input."""

    def test_adds_https_scheme(self):
        self.assertEqual(normalize_url("example.com"), "https://example.com")

    def test_strips_trailing_slash_keeps_http(self):
        self.assertEqual(normalize_url("http://example.com/"), "http://example.com")

    def test_strips_every_trailing_slash(self):
        self.assertEqual(normalize_url("https://example.com//"), "https://example.com")
        self.assertEqual(normalize_url("example.com/about/ /"), "https://example.com/about")

    def test_trims_whitespace(self):
        self.assertEqual(normalize_url("  https://example.com/about  "), "https://example.com/about")

    def test_keeps_path_and_query(self):
        self.assertEqual(
            normalize_url("https://example.com/a/b?x=1"),
            "https://example.com/a/b?x=1",
        )

    def test_idempotent(self):
        samples = [
            "example.com",
            "http://example.com/",
            " https://Example.com/path/ ",
            "example.com//",
            "x/ /",
            "http://",
            "https://",
            "",
            "   ",
            "ftp://files.example.com/",
            "https://http://odd.example/",
        ]
        for raw in samples:
            with self.subTest(raw=raw):
                once = normalize_url(raw)
                self.assertEqual(normalize_url(once), once)


class TestExtractDomain(unittest.TestCase):
    """Test hostname extraction."""

    def test_hostname_lowercased(self):
        self.assertEqual(extract_domain("https://WWW.Example.COM/about"), "www.example.com")

    def test_bare_domain(self):
        self.assertEqual(extract_domain("example.com"), "example.com")

    def test_port_dropped(self):
        self.assertEqual(extract_domain("http://localhost:8080/x"), "localhost")


if __name__ == "__main__":
    unittest.main()
