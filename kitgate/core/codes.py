"""Access code primitives: normalization, format check, secrets and generation.

A stored code is either a legacy plaintext value or a bcrypt digest. Both are
modelled as ``CodeSecret`` variants exposing a single ``matches`` operation so
callers never branch on which column happens to be populated.
"""

from __future__ import annotations

import hmac
import logging
import re
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass

import bcrypt

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
CODE_PATTERN = re.compile(r"[A-Z0-9]{6}")
# Generated codes skip look-alikes (0/O, 1/I); the accepted format is wider
# so older hand-made codes keep working.
GENERATION_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
BCRYPT_ROUNDS = 10


def normalize_code(raw_code: str) -> str:
    """Uppercase and trim a user-supplied code."""

    return raw_code.upper().strip()


def is_valid_format(code: str) -> bool:
    """Return True when an already-normalized code is six of ``[A-Z0-9]``."""

    return CODE_PATTERN.fullmatch(code) is not None


class CodeSecret(ABC):
    """Stored secret an access code is verified against."""

    @abstractmethod
    def matches(self, candidate: str) -> bool:
        """Return True if the normalized candidate code opens this secret."""
        raise NotImplementedError


@dataclass(frozen=True)
class PlaintextSecret(CodeSecret):
    """Legacy scheme: the code itself is stored in clear."""

    value: str

    def matches(self, candidate: str) -> bool:
        return hmac.compare_digest(
            normalize_code(self.value).encode(), candidate.encode()
        )


@dataclass(frozen=True)
class HashedSecret(CodeSecret):
    """bcrypt digest of the uppercase code (``$2a$``/``$2b$`` prefixes)."""

    digest: str

    def matches(self, candidate: str) -> bool:
        try:
            return bcrypt.checkpw(candidate.encode(), self.digest.encode())
        except ValueError:
            logger.warning(
                "code_secret.malformed_digest",
                extra={"digest_prefix": self.digest[:4]},
            )
            return False


def secret_from_columns(code: str | None, code_hash: str | None) -> CodeSecret | None:
    """Build the secret for a stored row; the hash wins when both are present."""

    if code_hash:
        return HashedSecret(code_hash)
    if code:
        return PlaintextSecret(code)
    return None


def hash_code(code: str, *, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a code for storage (normalized before hashing)."""

    digest = bcrypt.hashpw(normalize_code(code).encode(), bcrypt.gensalt(rounds=rounds))
    return digest.decode()


def generate_code(length: int = CODE_LENGTH) -> str:
    """Generate a random code from the unambiguous alphabet."""

    return "".join(secrets.choice(GENERATION_ALPHABET) for _ in range(length))
