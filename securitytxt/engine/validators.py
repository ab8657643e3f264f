"""
securitytxt/engine/validators.py
One validator per field kind.

Each validator takes a classified line and the run context and returns a
Decision: keep the line (possibly rewritten), keep it with warnings, or drop it
with a reason. Validators read the run counters but never update them, and
only reach the network through the context's fetcher and verifier.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from securitytxt.base.exceptions import FetchError
from securitytxt.engine.classifier import ClassifiedLine, FieldKind
from securitytxt.engine.crossref import CrossReferenceVerifier
from securitytxt.engine.models import RunState
from securitytxt.net.adapter import UrlFetcher

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(
    r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.(xn--[A-Za-z0-9-]{2,20}|[A-Za-z]{2,20})$",
    re.IGNORECASE,
)
TEL_RE = re.compile(r"^tel:\+?[0-9-]+$", re.IGNORECASE)
HTTPS_URL_RE = re.compile(r"https://[^ >]+", re.IGNORECASE)
OPENPGP4FPR_RE = re.compile(r"^openpgp4fpr:(?P<fpr>[0-9A-F]{40})$", re.IGNORECASE)
DNS_OPENPGPKEY_RE = re.compile(r"^dns:[0-9A-F]{56}\._openpgpkey\.\S*$", re.IGNORECASE)
LANGUAGE_TAG = r"[a-z]{1,8}(?:-[a-z]{1,8})?"
LANGUAGES_RE = re.compile(rf"^{LANGUAGE_TAG}(?:[ \t]*,[ \t]*{LANGUAGE_TAG})*$", re.IGNORECASE)

PHONE_CONTEXT = ";phone-context="


class Verdict(Enum):
    ACCEPT = "accept"
    WARN = "warn"
    REJECT = "reject"


@dataclass(frozen=True)
class Decision:
    verdict: Verdict
    line: Optional[str] = None
    reason: str = ""
    warnings: Tuple[str, ...] = ()
    # Dropped without a diagnostic (leading blank lines)
    silent: bool = False

    @property
    def accepted(self) -> bool:
        return self.verdict is not Verdict.REJECT

    @classmethod
    def accept(cls, line: str, warnings: Sequence[str] = ()) -> "Decision":
        if warnings:
            return cls(Verdict.WARN, line=line, warnings=tuple(warnings))
        return cls(Verdict.ACCEPT, line=line)

    @classmethod
    def reject(cls, reason: str, silent: bool = False) -> "Decision":
        return cls(Verdict.REJECT, reason=reason, silent=silent)


@dataclass
class ValidationContext:
    state: RunState
    expires: str
    fetcher: UrlFetcher
    verifier: CrossReferenceVerifier


def scheme_of(value: str) -> str:
    head, sep, _ = value.partition(":")
    return head.lower() if sep else ""


def extract_https_url(value: str) -> Optional[str]:
    match = HTTPS_URL_RE.search(value)
    return match.group(0) if match else None


def check_https_url(url: Optional[str], ctx: ValidationContext) -> Tuple[bool, List[str]]:
    """
    Reachability check for an HTTPS URL.

    200 is success. A redirect chain ending in 200 is success with a warning.
    Anything else fails.
    """
    if not url:
        return False, []
    try:
        result = ctx.fetcher.fetch_status(url)
    except FetchError as e:
        logger.debug(f"Fetch failed for {url}: {e}")
        return False, []

    if not result.ok:
        logger.debug(f"{url} answered HTTP {result.status}")
        return False, []
    if result.redirected:
        status = result.redirect_status or result.status
        return True, [f"HTTP STATUS {status} (not 200 ok): {url}"]
    return True, []


def validate_expires(cl: ClassifiedLine, ctx: ValidationContext) -> Decision:
    if ctx.state.expires_seen:
        return Decision.reject("EXPIRES ALREADY SET")
    return Decision.accept(f"Expires: {ctx.expires}")


def validate_mailto(cl: ClassifiedLine, ctx: ValidationContext) -> Decision:
    address = cl.raw_value[len("mailto:"):]
    if EMAIL_RE.match(address):
        return Decision.accept(cl.line)
    return Decision.reject("INVALID EMAIL")


def validate_tel(cl: ClassifiedLine, ctx: ValidationContext) -> Decision:
    # RFC 3966, 5.1.1: "tel" URIs MUST NOT use spaces in visual separators.
    value = cl.raw_value.strip().replace(" ", "-")
    if PHONE_CONTEXT in value.lower():
        return Decision.reject("INVALID TEL; local numbers with phone-context are not supported")
    if not TEL_RE.match(value):
        return Decision.reject("INVALID TEL")

    fixed = cl.with_value(value)
    if fixed != cl.line:
        return Decision.accept(fixed, [f"FIXED (tel: MUST NOT use spaces; RFC 3966, 5.1.1): {cl.line}"])
    return Decision.accept(fixed)


def validate_contact(cl: ClassifiedLine, ctx: ValidationContext) -> Decision:
    scheme = scheme_of(cl.raw_value)
    if scheme == "https":
        ok, warnings = check_https_url(extract_https_url(cl.raw_value), ctx)
        if not ok:
            return Decision.reject("URL NOT WORKING")
        return Decision.accept(cl.line, warnings)
    if scheme == "mailto":
        return validate_mailto(cl, ctx)
    if scheme == "tel":
        return validate_tel(cl, ctx)
    return Decision.reject("INVALID/UNKNOWN CONTACT URI")


def validate_https_field(cl: ClassifiedLine, ctx: ValidationContext) -> Decision:
    """Acknowledgments, Canonical, Hiring and Policy all take a single HTTPS URI."""
    if scheme_of(cl.raw_value) != "https":
        return Decision.reject("SCHEME NOT SUPPORTED")
    ok, warnings = check_https_url(extract_https_url(cl.raw_value), ctx)
    if not ok:
        return Decision.reject("URL NOT WORKING")
    return Decision.accept(cl.line, warnings)


def validate_encryption(cl: ClassifiedLine, ctx: ValidationContext) -> Decision:
    scheme = scheme_of(cl.raw_value)

    if scheme == "https":
        url = extract_https_url(cl.raw_value)
        ok, warnings = check_https_url(url, ctx)
        if not ok:
            return Decision.reject("URL NOT WORKING")
        if not ctx.verifier.matches_key_document(url):
            warnings.append(f"SIGNING KEY NOT FOUND AT THE FETCHED URL: {cl.line}")
        return Decision.accept(cl.line, warnings)

    if scheme == "openpgp4fpr":
        match = OPENPGP4FPR_RE.match(cl.raw_value)
        if not match:
            return Decision.reject("INVALID OPENPGP4FPR; not 40 hex chars")
        if not ctx.verifier.matches_fingerprint(match.group("fpr")):
            return Decision.accept(cl.line, [f"SIGNING KEY & OPENPGP4FPR DO NOT MATCH: {cl.line}"])
        return Decision.accept(cl.line)

    if scheme == "dns":
        if not DNS_OPENPGPKEY_RE.match(cl.raw_value):
            return Decision.reject("INVALID DNS OPENPGPKEY; not 56 hex chars")
        return Decision.accept(cl.line)

    return Decision.reject("SCHEME NOT SUPPORTED")


def validate_languages(cl: ClassifiedLine, ctx: ValidationContext) -> Decision:
    if not LANGUAGES_RE.match(cl.raw_value):
        return Decision.reject("INVALID LANGUAGES")
    if ctx.state.languages_seen:
        return Decision.reject("LANGUAGES ALREADY SET")
    return Decision.accept(cl.line)


def validate_comment(cl: ClassifiedLine, ctx: ValidationContext) -> Decision:
    return Decision.accept(cl.line)


def validate_blank(cl: ClassifiedLine, ctx: ValidationContext) -> Decision:
    if not ctx.state.output:
        return Decision.reject("LEADING BLANK LINE", silent=True)
    return Decision.accept(cl.line)


def validate_invalid(cl: ClassifiedLine, ctx: ValidationContext) -> Decision:
    return Decision.reject("INVALID LINE")


VALIDATORS: Dict[FieldKind, Callable[[ClassifiedLine, ValidationContext], Decision]] = {
    FieldKind.EXPIRES: validate_expires,
    FieldKind.CONTACT: validate_contact,
    FieldKind.ACKNOWLEDGMENTS: validate_https_field,
    FieldKind.CANONICAL: validate_https_field,
    FieldKind.HIRING: validate_https_field,
    FieldKind.POLICY: validate_https_field,
    FieldKind.ENCRYPTION: validate_encryption,
    FieldKind.PREFERRED_LANGUAGES: validate_languages,
    FieldKind.COMMENT: validate_comment,
    FieldKind.BLANK: validate_blank,
    FieldKind.INVALID: validate_invalid,
}


def validate(cl: ClassifiedLine, ctx: ValidationContext) -> Decision:
    return VALIDATORS[cl.kind](cl, ctx)
