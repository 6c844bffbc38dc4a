"""Tests for admin session tokens."""

import time

from agentsquare.services.admin_auth import TOKEN_TTL_SECONDS, issue_token, verify_token


class TestTokens:
    def test_issue_and_verify(self):
        token, expires_at = issue_token()
        assert verify_token(token)
        assert expires_at - int(time.time()) <= TOKEN_TTL_SECONDS

    def test_expired_token(self):
        token, expires_at = issue_token(ttl_seconds=10, now=1000)
        assert verify_token(token, now=1005)
        assert not verify_token(token, now=expires_at)

    def test_tampered_signature(self):
        token, _ = issue_token()
        payload, signature = token.split(".")
        forged = payload + "." + ("A" if signature[0] != "A" else "B") + signature[1:]
        assert not verify_token(forged)

    def test_other_secret_rejected(self, monkeypatch):
        token, _ = issue_token()
        monkeypatch.setenv("AGENTSQUARE_ADMIN_SECRET", "rotated-secret")
        assert not verify_token(token)

    def test_malformed_tokens(self):
        assert not verify_token(None)
        assert not verify_token("")
        assert not verify_token("no-dot")
        assert not verify_token("a.b.c")
        assert not verify_token("payload.签名")
