import re

import pytest

from quote_portal.quotes import tokens


def test_tokens_are_url_safe_and_long():
    token = tokens.issue_magic_token()
    assert re.fullmatch(r"[A-Za-z0-9_-]+", token)
    # 32 random bytes -> 43 base64url characters
    assert len(token) >= 43


def test_ten_thousand_tokens_are_unique():
    issued = {tokens.issue_magic_token() for _ in range(10_000)}
    assert len(issued) == 10_000


def test_issue_unique_token_redraws_on_collision(monkeypatch):
    draws = iter(["taken", "taken", "fresh"])
    monkeypatch.setattr(tokens, "issue_magic_token", lambda: next(draws))
    assert tokens.issue_unique_token(lambda t: t == "taken") == "fresh"


def test_issue_unique_token_gives_up(monkeypatch):
    monkeypatch.setattr(tokens, "issue_magic_token", lambda: "same")
    with pytest.raises(RuntimeError):
        tokens.issue_unique_token(lambda t: True)
