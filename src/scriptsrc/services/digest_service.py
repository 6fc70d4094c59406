# src/scriptsrc/services/digest_service.py
from __future__ import annotations

import base64
import hashlib
from enum import Enum


class HashAlgorithm(str, Enum):
    """Hash algorithms accepted by CSP hash-sources. The value is the token prefix."""
    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"

    @classmethod
    def default(cls) -> "HashAlgorithm":
        return cls.SHA512

    @classmethod
    def from_name(cls, name: str) -> "HashAlgorithm":
        """Resolves 'sha256', 'SHA-256', 'sha512' etc. to a member."""
        key = (name or "").strip().lower().replace("-", "")
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"Unsupported hash algorithm: {name!r} (expected one of {', '.join(m.value for m in cls)})")


def compute_digest(content: str, algorithm: HashAlgorithm = HashAlgorithm.SHA512) -> str:
    """
    Hashes inline script text exactly as given and returns a CSP hash token,
    e.g. 'sha512-<base64>'. Surrounding quotes are added when the policy is formatted.
    """
    if not isinstance(algorithm, HashAlgorithm):
        raise ValueError(f"invalid hash algorithm: {algorithm!r}")
    digest = hashlib.new(algorithm.value, content.encode("utf-8")).digest()
    return f"{algorithm.value}-{base64.b64encode(digest).decode('ascii')}"
