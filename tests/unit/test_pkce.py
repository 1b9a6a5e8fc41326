"""Unit tests for the PKCE helpers used by the OAuth flow."""

import base64
import hashlib

import pytest
from hypothesis import given, settings, strategies as st

from skygear_sdk.pkce import (
    VERIFIER_ALPHABET,
    code_challenge_s256,
    create_pkce_challenge,
    generate_code_verifier,
)


class TestCodeVerifier:
    """Tests for code verifier generation."""

    def test_default_length(self) -> None:
        assert len(generate_code_verifier()) == 64

    @given(length=st.integers(min_value=43, max_value=128))
    @settings(max_examples=50)
    def test_length_and_alphabet(self, length: int) -> None:
        verifier = generate_code_verifier(length)

        assert len(verifier) == length
        assert set(verifier) <= set(VERIFIER_ALPHABET)

    @pytest.mark.parametrize("length", [0, 42, 129])
    def test_rejects_out_of_range_length(self, length: int) -> None:
        with pytest.raises(ValueError, match="between 43 and 128"):
            generate_code_verifier(length)


class TestCodeChallenge:
    """Tests for S256 challenges."""

    def test_matches_rfc_7636_example(self) -> None:
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"

        assert code_challenge_s256(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    @given(length=st.integers(min_value=43, max_value=128))
    @settings(max_examples=50)
    def test_created_pair_is_consistent(self, length: int) -> None:
        pkce = create_pkce_challenge(length)
        digest = hashlib.sha256(pkce.code_verifier.encode("ascii")).digest()

        assert pkce.code_challenge_method == "S256"
        assert pkce.code_challenge == base64.urlsafe_b64encode(digest).decode().rstrip("=")
        assert len(pkce.code_challenge) == 43

    def test_pairs_are_fresh(self) -> None:
        assert create_pkce_challenge().code_verifier != create_pkce_challenge().code_verifier
