"""Locate an issued credential in a loosely-shaped registration response.

Services disagree on where they put the key, so extraction is an ordered
list of lookups. The first one that yields a non-empty string wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class CredentialMatch:
    credential: str
    source: str  # which lookup found it, e.g. "agent.api_key"


def _field(*path: str) -> Callable[[Any], str | None]:
    def lookup(payload: Any) -> str | None:
        node = payload
        for key in path:
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        return node if isinstance(node, str) and node else None

    return lookup


CREDENTIAL_STRATEGIES: tuple[tuple[str, Callable[[Any], str | None]], ...] = (
    ("agent.api_key", _field("agent", "api_key")),
    ("token", _field("token")),
    ("api_key", _field("api_key")),
    ("key", _field("key")),
)

_CLAIM_URL = _field("agent", "claim_url")


def extract_credential(payload: Any) -> CredentialMatch | None:
    """Return the first credential found by :data:`CREDENTIAL_STRATEGIES`."""
    for source, lookup in CREDENTIAL_STRATEGIES:
        value = lookup(payload)
        if value:
            return CredentialMatch(credential=value, source=source)
    return None


def extract_claim_url(payload: Any) -> str | None:
    """Follow-up URL the operator must visit to activate the identity."""
    return _CLAIM_URL(payload)
