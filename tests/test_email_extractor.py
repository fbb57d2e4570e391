"""
Unit tests for email extraction.
"""
import pytest

from datafinder.email_extractor import (
    EMAIL_PATTERN,
    DEFAULT_EXCLUDE_PATTERNS,
    build_exclusions,
    extract_emails,
    extract_emails_from_text,
    extract_mailto_targets,
    is_excluded,
)


SAMPLE_PAGE = """
<html>
<body>
  <header><img src="/img/logo@2x.png" alt="logo"></header>
  <p>Contact us at info@realcompany.org or Sales@RealCompany.org</p>
  <p>Repeat: INFO@realcompany.org</p>
  <p>Placeholder: name@example.com, test@realcompany.org, user@realcompany.org</p>
  <footer><a href="mailto:support%40realcompany.org?subject=Hi">Support</a></footer>
</body>
</html>
"""


class TestEmailPattern:
    """Tests for email regex pattern."""

    def test_pattern_matches_valid(self):
        """Test that pattern matches valid emails."""
        valid = [
            "test@test.com",
            "user.name@domain.org",
            "contact+info@company.co.uk",
            "a_b%c@sub.host-name.io",
        ]

        for email in valid:
            match = EMAIL_PATTERN.match(email)
            assert match and match.group() == email, f"Pattern should match {email}"

    def test_pattern_no_false_positives(self):
        """Test pattern doesn't match invalid strings."""
        invalid = [
            "not an email",
            "@nodomain.com",
            "noatsign.com",
            "user@host.c0m",
        ]

        for text in invalid:
            match = EMAIL_PATTERN.match(text)
            if match:
                assert match.group() != text


class TestExclusions:
    """Tests for the exclusion policy."""

    def test_defaults_come_first(self):
        patterns = build_exclusions(['NoReply@'])
        assert patterns[:len(DEFAULT_EXCLUDE_PATTERNS)] == [p.lower() for p in DEFAULT_EXCLUDE_PATTERNS]
        assert patterns[-1] == 'noreply@'

    def test_duplicates_and_blanks_dropped(self):
        patterns = build_exclusions(['.PNG', '  ', 'foo'])
        assert patterns.count('.png') == 1
        assert '' not in patterns
        assert 'foo' in patterns

    def test_is_excluded_is_case_insensitive(self):
        assert is_excluded('Logo@2X.PNG', ['.png'])
        assert is_excluded('someone@EXAMPLE.com', ['example.com'])
        assert not is_excluded('info@shop.org', ['.png'])


class TestExtractEmails:
    """Tests for extract_emails."""

    def test_no_emails(self):
        assert extract_emails("no emails here") == set()

    def test_empty_input(self):
        assert extract_emails("") == set()
        assert extract_emails(None) == set()

    def test_binary_garbage_does_not_raise(self):
        garbage = bytes(range(256)) * 20
        result = extract_emails(garbage)
        assert isinstance(result, set)

    def test_binary_garbage_as_text_does_not_raise(self):
        garbage = bytes(range(256)).decode('latin-1') + '<a href="mailto:%zz">'
        assert isinstance(extract_emails(garbage), set)

    def test_sample_page(self):
        emails = extract_emails(SAMPLE_PAGE)

        lowered = {e.lower() for e in emails}
        assert 'info@realcompany.org' in lowered
        assert 'sales@realcompany.org' in lowered
        assert 'support@realcompany.org' in lowered
        assert 'name@example.com' not in lowered
        assert 'test@realcompany.org' not in lowered
        assert 'user@realcompany.org' not in lowered
        assert not any(e.endswith('.png') for e in lowered)

    def test_case_insensitive_dedup_keeps_first_spelling(self):
        emails = extract_emails("Info@Shop.org then info@shop.org then INFO@SHOP.ORG")
        assert emails == {'Info@Shop.org'}

    def test_no_duplicates_or_exclusions(self):
        """No two entries compare equal ignoring case; none contains an exclusion."""
        exclusions = build_exclusions()
        emails = extract_emails(SAMPLE_PAGE, exclusions)

        lowered = [e.lower() for e in emails]
        assert len(lowered) == len(set(lowered))
        for email in lowered:
            assert not any(pattern in email for pattern in exclusions)

    def test_idempotent(self):
        assert extract_emails(SAMPLE_PAGE) == extract_emails(SAMPLE_PAGE)

    def test_custom_exclusions(self):
        exclusions = build_exclusions(['sales@'])
        emails = {e.lower() for e in extract_emails(SAMPLE_PAGE, exclusions)}
        assert 'sales@realcompany.org' not in emails
        assert 'info@realcompany.org' in emails

    def test_mailto_url_decoded(self):
        html = '<a href="mailto:hello%40bakery.net">Email</a>'
        assert extract_mailto_targets(html) == ['hello@bakery.net']
        assert extract_emails(html) == {'hello@bakery.net'}

    def test_encoded_mailto_prefix_not_kept(self):
        """An escaped character in a mailto href doesn't leak into the address."""
        html = '<a href="mailto:%20sales@shop.org">Email us</a>'
        assert extract_emails(html) == {'sales@shop.org'}

    def test_mailto_and_visible_text(self):
        html = '<a href="mailto:%20Orders@shop.org">orders@shop.org</a>'
        assert {e.lower() for e in extract_emails(html)} == {'orders@shop.org'}

    def test_extract_from_text_sorted(self):
        text = """
        Contact us at sales@realcompany.org or info@realcompany.org
        Fake email: test@example.com should be ignored
        """
        emails = extract_emails_from_text(text)

        assert emails == ['info@realcompany.org', 'sales@realcompany.org']


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
