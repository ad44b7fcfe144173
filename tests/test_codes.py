"""Tests for access code primitives."""

import pytest

from kitgate.core.codes import (
    GENERATION_ALPHABET,
    HashedSecret,
    PlaintextSecret,
    generate_code,
    hash_code,
    is_valid_format,
    normalize_code,
    secret_from_columns,
)

# Low cost keeps the suite fast; verification reads the cost from the digest
FAST_ROUNDS = 4


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("abc123", "ABC123"),
        ("  xyz789 \n", "XYZ789"),
        ("ABC123", "ABC123"),
    ],
)
def test_normalize_code(raw: str, expected: str) -> None:
    assert normalize_code(raw) == expected


@pytest.mark.parametrize("code", ["ABC123", "000000", "ZZZZZZ", "A1B2C3"])
def test_valid_format(code: str) -> None:
    assert is_valid_format(code) is True


@pytest.mark.parametrize(
    "code",
    ["", "ABC12", "ABC1234", "ABC-12", "abc123", "ABC 12", "ÁBC123", "ABC12\n"],
)
def test_invalid_format(code: str) -> None:
    assert is_valid_format(code) is False


def test_hashed_secret_matches_its_code() -> None:
    digest = hash_code("abc123", rounds=FAST_ROUNDS)

    assert digest.startswith("$2")
    assert HashedSecret(digest).matches("ABC123") is True
    assert HashedSecret(digest).matches("ABC124") is False


def test_hashed_secret_with_malformed_digest_does_not_match() -> None:
    assert HashedSecret("not-a-bcrypt-hash").matches("ABC123") is False


def test_plaintext_secret_compares_normalized_values() -> None:
    assert PlaintextSecret("abc123").matches("ABC123") is True
    assert PlaintextSecret("ABC123").matches("ABC124") is False


def test_hash_takes_precedence_over_plaintext() -> None:
    digest = hash_code("HASHED", rounds=FAST_ROUNDS)
    secret = secret_from_columns("PLAIN1", digest)

    assert isinstance(secret, HashedSecret)
    assert secret.matches("HASHED") is True
    assert secret.matches("PLAIN1") is False


def test_secret_from_columns_without_secret() -> None:
    assert secret_from_columns(None, None) is None
    assert isinstance(secret_from_columns("ABC123", None), PlaintextSecret)


def test_generated_codes_use_unambiguous_alphabet() -> None:
    codes = [generate_code() for _ in range(200)]

    for code in codes:
        assert len(code) == 6
        assert is_valid_format(code)
        assert set(code) <= set(GENERATION_ALPHABET)

    assert not set("01IO") & set("".join(codes))
