"""Tests for session tokens, password checks and the signing-secret fallback."""
import base64
import hashlib
import hmac

import pytest

from guestbook.services.app_config import AppConfig
from web.auth import (
    INSECURE_DEFAULT_SECRET,
    check_password,
    issue_session_token,
    session_secret,
    sign,
    verify_session_token,
)


def test_token_round_trip():
    token = issue_session_token("s3cret")
    payload = verify_session_token(token, "s3cret")
    assert payload is not None
    assert token == sign(payload, "s3cret")


def test_token_wrong_secret():
    token = issue_session_token("s3cret")
    assert verify_session_token(token, "other") is None


def test_token_single_character_mutation():
    """Changing any one character of a valid token invalidates it."""
    token = issue_session_token("s3cret")
    for i, ch in enumerate(token):
        replacement = "A" if ch != "A" else "B"
        mutated = token[:i] + replacement + token[i + 1:]
        assert verify_session_token(mutated, "s3cret") is None, f"mutation at {i} accepted"


def test_token_without_delimiter():
    assert verify_session_token("no-delimiter-here", "s3cret") is None
    assert verify_session_token("", "s3cret") is None
    assert verify_session_token(None, "s3cret") is None


def test_token_signature_is_url_safe():
    token = issue_session_token("s3cret")
    payload, signature = token.split(".")
    assert "=" not in signature
    assert "+" not in signature and "/" not in signature
    assert len(signature) == 43  # unpadded base64 of a SHA-256 digest


def test_tokens_are_unique():
    assert issue_session_token("s3cret") != issue_session_token("s3cret")


@pytest.mark.parametrize(
    "candidate,expected,ok",
    [
        ("hunter2", "hunter2", True),
        ("hunter3", "hunter2", False),  # same length, last byte differs
        ("Hunter2", "hunter2", False),  # same length, first byte differs
        ("hunter", "hunter2", False),
        ("", "hunter2", False),
        ("hunter2", "", False),
        (None, "hunter2", False),
        ("hunter2", None, False),
    ],
)
def test_check_password(candidate, expected, ok):
    assert check_password(candidate, expected) is ok


def test_session_secret_fallback_chain():
    assert session_secret(AppConfig(session_secret="sig", admin_password="pw")) == "sig"
    assert session_secret(AppConfig(admin_password="pw")) == "pw"
    assert session_secret(AppConfig()) == INSECURE_DEFAULT_SECRET


def test_insecure_default_still_verifies():
    """Tokens signed with the fallback secret are accepted under the same config."""
    secret = session_secret(AppConfig())
    token = issue_session_token(secret)
    assert verify_session_token(token, session_secret(AppConfig())) is not None


def test_signature_is_plain_hmac_sha256():
    """Tokens are ``payload.base64url(HMAC-SHA256(secret, payload))`` with no padding."""
    digest = hmac.new(b"s3cret", b"abc-123", hashlib.sha256).digest()
    expected = base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
    assert sign("abc-123", "s3cret") == f"abc-123.{expected}"
    assert verify_session_token(f"abc-123.{expected}", "s3cret") == "abc-123"


def test_token_with_non_canonical_signature_rejected():
    """Flipping the spare low bits of the last base64 character is not accepted."""
    token = sign("abc-123", "s3cret")
    alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
    last = alphabet.index(token[-1])
    for spare in range(1, 4):
        mutated = token[:-1] + alphabet[last ^ spare]
        assert verify_session_token(mutated, "s3cret") is None


def test_token_with_extra_segment_rejected():
    token = sign("abc-123", "s3cret")
    assert verify_session_token("x." + token, "s3cret") is None
    assert verify_session_token(token + ".x", "s3cret") is None
