"""
Tests for normalization helpers.
"""

from talentintake.normalize import (
    canonical_url,
    clean_str,
    companies_differ,
    normalize_company,
    normalize_email,
    normalize_profile_handle,
    strip_html,
)


class TestNormalizeEmail:
    def test_trims_and_lowercases(self):
        """Emails compare case-insensitively."""
        assert normalize_email("  Jane.Doe@Example.COM ") == "jane.doe@example.com"

    def test_blank_is_none(self):
        """Blank emails are treated as missing."""
        assert normalize_email("   ") is None
        assert normalize_email(None) is None


class TestProfileHandle:
    def test_linkedin_variants_collapse(self):
        """Different spellings of one LinkedIn profile give the same handle."""
        expected = "https://www.linkedin.com/in/janedoe/"
        for raw in [
            "https://www.linkedin.com/in/janedoe",
            "http://linkedin.com/in/JaneDoe/",
            "linkedin.com/in/janedoe?trk=public_profile",
            "https://de.linkedin.com/in/janedoe/",
            "https://www.linkedin.com/pub/janedoe",
            "https://www.linkedin.com/profile/view?id=janedoe",
        ]:
            assert normalize_profile_handle(raw) == expected

    def test_other_urls_drop_query_and_slash(self):
        """Non-LinkedIn URLs are canonicalized generically."""
        assert normalize_profile_handle("https://GitHub.com/jane/?tab=repos") == "https://github.com/jane"

    def test_blank_is_none(self):
        """Blank handles are treated as missing."""
        assert normalize_profile_handle("") is None
        assert normalize_profile_handle(None) is None

    def test_canonical_url(self):
        """Fragments are dropped too."""
        assert canonical_url("https://example.com/a/#top") == "https://example.com/a"


class TestCompanies:
    def test_suffixes_ignored(self):
        """Legal suffixes do not make companies different."""
        assert normalize_company("Acme, Inc.") == "acme"
        assert not companies_differ("Acme Inc", "ACME")

    def test_differ_requires_both(self):
        """A missing side never counts as a difference."""
        assert not companies_differ("Acme", None)
        assert not companies_differ("", "Globex")
        assert companies_differ("Acme", "Globex")


class TestStripHtml:
    def test_removes_markup(self):
        """Markup from provider fields is reduced to text."""
        assert strip_html("<p>Building <b>data</b> platforms</p>") == "Building data platforms"

    def test_plain_text_unchanged(self):
        """Plain strings are only trimmed."""
        assert strip_html("  hello  ") == "hello"
        assert strip_html(None) is None

    def test_clean_str(self):
        """Non-strings are stringified, blanks dropped."""
        assert clean_str(42) == "42"
        assert clean_str(" ") is None
