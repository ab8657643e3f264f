"""
securitytxt/engine/crossref.py
Checks referenced encryption material against the signing key.

A mismatch never rejects a line; callers turn a False result into a warning.
With no signing key configured every check passes.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional

from securitytxt.base.exceptions import FetchError
from securitytxt.engine.models import SigningKey
from securitytxt.net.adapter import UrlFetcher

logger = logging.getLogger(__name__)

HEX_RUN_RE = re.compile(r"[0-9A-Fa-f]{40}")


class KeyInspector(ABC):
    """Capability that lists the fingerprints contained in a public key document."""

    @abstractmethod
    def fingerprints_in(self, key_document: bytes) -> List[str]:
        ...


def scan_fingerprints(key_document: bytes) -> List[str]:
    """Find 40-hex runs in a text key listing, ignoring spaces between groups."""
    text = key_document.decode("utf-8", errors="replace")
    compact = re.sub(r"[ \t]+", "", text)
    return [m.upper() for m in HEX_RUN_RE.findall(compact)]


class CrossReferenceVerifier:
    def __init__(
        self,
        signing_key: Optional[SigningKey],
        fetcher: Optional[UrlFetcher] = None,
        inspector: Optional[KeyInspector] = None,
    ):
        self.signing_key = signing_key
        self.fetcher = fetcher
        self.inspector = inspector

    @property
    def active(self) -> bool:
        return self.signing_key is not None

    def matches_fingerprint(self, candidate: str) -> bool:
        """Compare an inline openpgp4fpr fingerprint with the signing key."""
        if not self.active:
            return True
        return candidate.strip().upper() == self.signing_key.fingerprint

    def matches_key_document(self, url: str) -> bool:
        """Fetch a public key document and check that it holds the signing key."""
        if not self.active:
            return True
        if self.fetcher is None:
            return False
        try:
            body = self.fetcher.fetch_body(url)
        except FetchError as e:
            logger.debug(f"Key document fetch failed: {e}")
            return False

        if self.inspector is not None:
            found = [fpr.upper() for fpr in self.inspector.fingerprints_in(body)]
        else:
            found = scan_fingerprints(body)
        return self.signing_key.fingerprint in found
