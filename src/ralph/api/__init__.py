"""Remote REST service adapter."""

from ralph.api.client import ApiClient
from ralph.api.credentials import (
    CREDENTIAL_STRATEGIES,
    CredentialMatch,
    extract_claim_url,
    extract_credential,
)

__all__ = [
    "ApiClient",
    "CREDENTIAL_STRATEGIES",
    "CredentialMatch",
    "extract_claim_url",
    "extract_credential",
]
