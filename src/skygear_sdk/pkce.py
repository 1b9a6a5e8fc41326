"""PKCE (RFC 7636) pairs for the OAuth authorization code exchange.

The challenge goes to the authorization-URL request and the verifier to
``get_oauth_result`` once the provider redirects back.
``SkygearClient.oauth_authorization_url_with_pkce`` does the first half.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
import string

from .models import PKCEChallenge

# RFC 7636 section 4.1 unreserved characters
VERIFIER_ALPHABET = string.ascii_letters + string.digits + "-._~"


def generate_code_verifier(length: int = 64) -> str:
    """Random code verifier of ``length`` unreserved characters.

    Raises:
        ValueError: If length is outside 43..128.
    """
    if not 43 <= length <= 128:
        msg = "Code verifier length must be between 43 and 128 characters"
        raise ValueError(msg)
    return "".join(secrets.choice(VERIFIER_ALPHABET) for _ in range(length))


def code_challenge_s256(code_verifier: str) -> str:
    """BASE64URL(SHA256(verifier)) without padding."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def create_pkce_challenge(verifier_length: int = 64) -> PKCEChallenge:
    """Fresh verifier with its S256 challenge."""
    code_verifier = generate_code_verifier(verifier_length)
    return PKCEChallenge(
        code_verifier=code_verifier,
        code_challenge=code_challenge_s256(code_verifier),
    )
