"""Tests for ralph.api.credentials."""

from __future__ import annotations

from ralph.api.credentials import (
    CREDENTIAL_STRATEGIES,
    CredentialMatch,
    extract_claim_url,
    extract_credential,
)


class TestExtractCredential:
    def test_strategy_order(self) -> None:
        assert [source for source, _ in CREDENTIAL_STRATEGIES] == [
            "agent.api_key",
            "token",
            "api_key",
            "key",
        ]

    def test_nested_agent_api_key(self) -> None:
        payload = {"agent": {"api_key": "k-nested", "claim_url": "https://c"}}
        assert extract_credential(payload) == CredentialMatch("k-nested", "agent.api_key")

    def test_nested_wins_over_top_level(self) -> None:
        payload = {"agent": {"api_key": "nested"}, "token": "flat"}
        assert extract_credential(payload).credential == "nested"

    def test_token(self) -> None:
        assert extract_credential({"token": "t"}) == CredentialMatch("t", "token")

    def test_api_key_before_key(self) -> None:
        match = extract_credential({"key": "k", "api_key": "a"})
        assert match == CredentialMatch("a", "api_key")

    def test_key(self) -> None:
        assert extract_credential({"key": "k"}) == CredentialMatch("k", "key")

    def test_empty_string_skipped(self) -> None:
        assert extract_credential({"token": "", "key": "k"}).source == "key"

    def test_non_string_skipped(self) -> None:
        assert extract_credential({"token": 123}) is None

    def test_nothing_found(self) -> None:
        assert extract_credential({"status": "ok"}) is None

    def test_non_dict_payload(self) -> None:
        assert extract_credential(None) is None
        assert extract_credential(["token"]) is None
        assert extract_credential("token") is None

    def test_agent_not_a_mapping(self) -> None:
        assert extract_credential({"agent": "bot", "key": "k"}).source == "key"


class TestExtractClaimUrl:
    def test_present(self) -> None:
        assert extract_claim_url({"agent": {"claim_url": "https://c"}}) == "https://c"

    def test_absent(self) -> None:
        assert extract_claim_url({"token": "t"}) is None
        assert extract_claim_url(None) is None
