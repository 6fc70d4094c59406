# src/scriptsrc/services/source_classifier_service.py
from __future__ import annotations

import logging
import re
from typing import NamedTuple, Optional
from urllib.parse import urlsplit

from scriptsrc.errors import InsecureSourceError, MalformedReferenceError, UnsupportedSourceError

logger = logging.getLogger(__name__)


class SourceAction(NamedTuple):
    """
    Result of classifying a script src.
    host is None for same-origin references, otherwise the https origin to allow.
    """
    host: Optional[str] = None

    @property
    def is_self(self) -> bool:
        return self.host is None


SAME_ORIGIN = SourceAction()

# host[:port] as it may appear in a host-source: a bracketed IPv6 literal or
# a name without whitespace, quotes, backslashes or CSP separators
_HOST_RE = re.compile(r"(?:\[[0-9A-Fa-f:.]+\]|[\w\-.~%!$&()*+=]+)(?::[0-9]+)?")


def classify_source(reference: str) -> SourceAction:
    """
    Decides what a script src needs in the policy.

    Relative references need 'self', https URLs need their origin
    (scheme + host + port), everything else is rejected.

    Scheme-relative references such as //cdn.example.com/x.js have no scheme
    and are treated as same-origin. A browser loads them from the named host,
    so a policy built from them will block that script; write the full
    https:// URL instead.
    """
    try:
        parsed = urlsplit(reference)
        # .port validates the port number; urlsplit alone does not
        parsed.port
    except ValueError as e:
        raise MalformedReferenceError(reference, e) from e

    scheme = parsed.scheme.lower()
    if scheme == "":
        logger.debug("Same-origin script src: %s", reference)
        return SAME_ORIGIN
    if scheme == "https":
        # Drop any userinfo; only host[:port] belongs in a host-source
        netloc = parsed.netloc.rpartition("@")[2]
        if not netloc:
            raise MalformedReferenceError(reference, ValueError("missing host"))
        if not _HOST_RE.fullmatch(netloc):
            raise MalformedReferenceError(reference, ValueError(f"invalid host {netloc!r}"))
        host = f"https://{netloc}"
        logger.debug("Remote script src %s -> %s", reference, host)
        return SourceAction(host=host)
    if scheme == "http":
        raise InsecureSourceError(reference)
    raise UnsupportedSourceError(reference)
