"""Tests for secret masking and redaction."""

from agentsquare.utils.redaction import (
    MASK_PREFIX,
    is_masked,
    mask_secret,
    redact_for_logging,
    sanitize_error_message,
)


class TestMaskSecret:
    def test_masks_to_last_four(self):
        assert mask_secret("sk-abcdef123456") == MASK_PREFIX + "3456"

    def test_empty_values(self):
        assert mask_secret(None) == ""
        assert mask_secret("") == ""

    def test_is_masked(self):
        assert is_masked(mask_secret("sk-abcdef123456"))
        assert not is_masked("sk-abcdef123456")


class TestRedactForLogging:
    def test_sensitive_keys_redacted(self):
        result = redact_for_logging({
            "image_api_key": "sk-1",
            "imagebed_token": "t",
            "image_model": "m",
            "nested": {"password": "p", "url": "u"},
        })
        assert result["image_api_key"] == "***REDACTED***"
        assert result["imagebed_token"] == "***REDACTED***"
        assert result["image_model"] == "m"
        assert result["nested"] == {"password": "***REDACTED***", "url": "u"}

    def test_empty_sensitive_value_kept(self):
        assert redact_for_logging({"api_key": ""}) == {"api_key": ""}

    def test_input_not_mutated(self):
        original = {"token": "abc"}
        redact_for_logging(original)
        assert original == {"token": "abc"}


class TestSanitizeErrorMessage:
    def test_scrubs_bearer_and_keys(self):
        msg = 'auth failed: Bearer abc.def-123 key sk-ABCDEFGH12345 {"api_key": "zzz"}'
        sanitized = sanitize_error_message(msg)
        assert "abc.def-123" not in sanitized
        assert "sk-ABCDEFGH12345" not in sanitized
        assert "zzz" not in sanitized

    def test_truncates(self):
        sanitized = sanitize_error_message("x" * 600, max_length=100)
        assert len(sanitized) == 100
        assert sanitized.endswith("...")

    def test_none_passthrough(self):
        assert sanitize_error_message(None) is None
