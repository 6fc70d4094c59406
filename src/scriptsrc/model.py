# src/scriptsrc/model.py
from __future__ import annotations

import logging
import re
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scriptsrc.services.digest_service import HashAlgorithm, compute_digest
from scriptsrc.services.source_classifier_service import classify_source

logger = logging.getLogger(__name__)

_HASH_TOKEN_RE = re.compile(r"^'((?:sha256|sha384|sha512)-[A-Za-z0-9+/]+={0,2})'$")
_HOST_TOKEN_RE = re.compile(r"^https://[^/?#\s]+$")


def _algorithm_from_value(v):
    if isinstance(v, str) and not isinstance(v, HashAlgorithm):
        return HashAlgorithm.from_name(v)
    return v


class ScriptSrc(BaseModel):
    """
    The script-src directive of a Content-Security-Policy.

    Built up by adding script srcs and inline script contents, then formatted
    as it should appear after "script-src" in the header value, e.g.:

        Content-Security-Policy: script-src 'self' https://challenges.cloudflare.com;

    See https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/Content-Security-Policy
    """
    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    # Whether 'self' is included
    self_: bool = Field(default=False, alias="self")
    # <alg>-<base64> tokens of allowed inline scripts, first-seen order
    hashes: List[str] = Field(default_factory=list)
    # Host sources such as https://example.com, first-seen order
    hosts: List[str] = Field(default_factory=list)
    # Added exactly as given, unquoted
    others: List[str] = Field(default_factory=list)
    hash_algorithm: HashAlgorithm = Field(default_factory=HashAlgorithm.default)

    @field_validator("hash_algorithm", mode="before")
    @classmethod
    def _coerce_algorithm(cls, v):
        return _algorithm_from_value(v)

    # -------- Mutation --------

    def add_inline(self, content: str) -> str:
        """Adds the hash of some inline JavaScript, using hash_algorithm. Returns the token."""
        token = compute_digest(content, self.hash_algorithm)
        if token not in self.hashes:
            self.hashes.append(token)
            logger.debug("Added inline script hash %s", token)
        return token

    def add_src(self, reference: str) -> None:
        """
        Adds either 'self' or the host needed to load the given script src.
        Raises a SourceError (and changes nothing) if it cannot be allowed.
        """
        action = classify_source(reference)
        if action.is_self:
            self.self_ = True
        elif action.host not in self.hosts:
            self.hosts.append(action.host)

    def add_other(self, token: str) -> None:
        self.others.append(token)

    def merge(self, other: "ScriptSrc") -> None:
        """Folds another policy into this one, keeping this one's entries first."""
        self.self_ = self.self_ or other.self_
        for token in other.hashes:
            if token not in self.hashes:
                self.hashes.append(token)
        for host in other.hosts:
            if host not in self.hosts:
                self.hosts.append(host)
        self.others.extend(other.others)

    # -------- Output --------

    @property
    def is_empty(self) -> bool:
        return not (self.self_ or self.hashes or self.hosts or self.others)

    def format(self) -> str:
        srcs: List[str] = []
        if self.self_:
            srcs.append("'self'")
        srcs.extend(f"'{token}'" for token in self.hashes)
        srcs.extend(self.hosts)
        srcs.extend(self.others)
        return " ".join(srcs)

    def __str__(self) -> str:
        return self.format()

    @classmethod
    def parse(cls, value: str, hash_algorithm: HashAlgorithm = HashAlgorithm.SHA512) -> "ScriptSrc":
        """
        Reads a formatted script-src value back into its parts.

        Tokens are classified by position, in the order format() writes them:
        'self', then hashes, then https origins. The first token that does not fit
        the current or a later group starts the others, and everything after it
        stays there, so a host-like extra that follows another extra stays an extra.
        """
        script_src = cls(hash_algorithm=hash_algorithm)
        group = 0  # 0: self, 1: hashes, 2: hosts, 3: others
        for token in value.split():
            match = _HASH_TOKEN_RE.match(token)
            if group == 0 and token == "'self'":
                script_src.self_ = True
                group = 1
            elif group <= 1 and match:
                if match.group(1) not in script_src.hashes:
                    script_src.hashes.append(match.group(1))
                group = 1
            elif group <= 2 and _HOST_TOKEN_RE.match(token):
                if token not in script_src.hosts:
                    script_src.hosts.append(token)
                group = 2
            else:
                script_src.others.append(token)
                group = 3
        return script_src
