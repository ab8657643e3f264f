"""
securitytxt/gpg/keyring.py
GnuPG-backed key lookup, key inspection and clear-signing.

The engine never talks to gpg directly; it receives a KeyRing (or just a
KeyInspector) so tests can substitute an in-memory double.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from abc import abstractmethod
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from securitytxt.base.config import GpgConfig
from securitytxt.base.exceptions import KeyLookupError, SignError, ToolMissingError
from securitytxt.engine.crossref import KeyInspector
from securitytxt.engine.models import SigningKey
from securitytxt.errors import ErrorCode

logger = logging.getLogger(__name__)

KEY_ID_RE = re.compile(r"^0x[0-9A-Fa-f]{8,40}$")


def is_key_id(value: Optional[str]) -> bool:
    return bool(value) and bool(KEY_ID_RE.match(value))


class KeyRing(KeyInspector):
    """Capability interface for signing key metadata and clear-signing."""

    @abstractmethod
    def key_info(self, key_id: str) -> SigningKey:
        """Resolve a (possibly short) key id to its fingerprint and expiration."""

    @abstractmethod
    def clearsign(self, document: str, fingerprint: str) -> str:
        """Return the document as an OpenPGP clear-signed message."""


def parse_colon_listing(listing: str, record: str = "sec") -> Optional[SigningKey]:
    """
    Extract the first primary key from `gpg --with-colons` output.

    Field 7 of a sec/pub record is the expiration as epoch seconds (empty for
    keys that never expire); field 10 of the following fpr record is the
    fingerprint.
    """
    expires_at: Optional[datetime] = None
    in_key = False
    for line in listing.splitlines():
        fields = line.split(":")
        if fields[0] == record:
            if in_key:
                break
            in_key = True
            raw_expiry = fields[6] if len(fields) > 6 else ""
            if raw_expiry.isdigit():
                expires_at = datetime.fromtimestamp(int(raw_expiry), tz=timezone.utc)
        elif fields[0] == "fpr" and in_key and len(fields) > 9:
            return SigningKey(fingerprint=fields[9], expires_at=expires_at)
    return None


def parse_fingerprints(listing: str) -> List[str]:
    """All fpr records of a `gpg --with-colons` listing, primary and subkeys."""
    found = []
    for line in listing.splitlines():
        fields = line.split(":")
        if fields[0] == "fpr" and len(fields) > 9 and fields[9]:
            found.append(fields[9].upper())
    return found


class GnuPGKeyRing(KeyRing):
    def __init__(self, config: Optional[GpgConfig] = None):
        self.config = config or GpgConfig()

    def ensure_available(self) -> None:
        if shutil.which(self.config.binary) is None:
            raise ToolMissingError(self.config.binary, "for signing the security.txt")

    def _run(self, args: Sequence[str], stdin: Optional[bytes] = None) -> subprocess.CompletedProcess:
        cmd = [self.config.binary, *args]
        logger.debug(f"Running {' '.join(cmd)}")
        return subprocess.run(
            cmd,
            input=stdin,
            capture_output=True,
            timeout=self.config.timeout_seconds,
            check=False,
        )

    def key_info(self, key_id: str) -> SigningKey:
        if not is_key_id(key_id):
            raise KeyLookupError(key_id, f"Invalid key ID {key_id}", code=ErrorCode.KEY_INVALID_ID)
        try:
            proc = self._run(["--batch", "--with-colons", "--fixed-list-mode", "--list-secret-keys", key_id])
        except (OSError, subprocess.SubprocessError) as e:
            raise KeyLookupError(key_id, f"Unable to run {self.config.binary}: {e}", code=ErrorCode.KEY_LOOKUP_FAILED) from e

        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()
            raise KeyLookupError(key_id, f"Unable to sign with PGP key {key_id}: {stderr}")

        key = parse_colon_listing(proc.stdout.decode("utf-8", errors="replace"))
        if key is None:
            raise KeyLookupError(key_id, f"Unable to sign with PGP key {key_id}")
        return key

    def fingerprints_in(self, key_document: bytes) -> List[str]:
        try:
            proc = self._run(
                ["--batch", "--with-colons", "--import-options", "show-only", "--import"],
                stdin=key_document,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"Key inspection failed: {e}")
            return []
        return parse_fingerprints(proc.stdout.decode("utf-8", errors="replace"))

    def clearsign(self, document: str, fingerprint: str) -> str:
        try:
            proc = self._run(
                ["--clearsign", "--local-user", fingerprint, "--output", "-"],
                stdin=document.encode("utf-8"),
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise SignError(f"Unable to run {self.config.binary}: {e}") from e

        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()
            raise SignError(f"Signing with {fingerprint} failed", details={"stderr": stderr})
        return proc.stdout.decode("utf-8")
