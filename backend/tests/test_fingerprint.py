"""
Tests for the submission fingerprint.
"""
import hashlib

from survey.services.fingerprint import generate_submission_fingerprint


class TestSubmissionFingerprint:

    def test_is_sha256_of_pipe_joined_fields(self):
        """Digest covers building|apartment|email|status, normalized."""
        expected = hashlib.sha256("a|12|resident@example.com|proprietaire".encode()).hexdigest()

        assert generate_submission_fingerprint("A", "12", "resident@example.com", "proprietaire") == expected

    def test_normalizes_case_and_whitespace(self):
        """Case and surrounding spaces do not change the fingerprint."""
        a = generate_submission_fingerprint("A", " 12 ", "Resident@Example.com ", "Proprietaire")
        b = generate_submission_fingerprint("a", "12", "resident@example.com", "proprietaire")

        assert a == b

    def test_absent_fields_are_empty_strings(self):
        expected = hashlib.sha256("b|||locataire".encode()).hexdigest()

        assert generate_submission_fingerprint("B", None, None, "locataire") == expected

    def test_malformed_input_never_raises(self):
        """Non-string values count as empty."""
        fp = generate_submission_fingerprint(42, ["x"], {"y": 1}, None)

        assert fp == hashlib.sha256("|||".encode()).hexdigest()
        assert len(fp) == 64

    def test_email_changes_fingerprint(self):
        without = generate_submission_fingerprint("A", "12", None, "proprietaire")
        with_email = generate_submission_fingerprint("A", "12", "resident@example.com", "proprietaire")

        assert without != with_email
