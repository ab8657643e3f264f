"""
securitytxt/engine/assembler.py
Drives a document line by line through the validators and assembles the
canonical, re-signable output.

This is the single entry point of the engine: validate_and_format().
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from securitytxt.base.config import get_config
from securitytxt.base.exceptions import MissingMandatoryFieldError
from securitytxt.engine.classifier import (
    ClassifiedLine,
    FieldKind,
    classify_document,
    normalize_line,
    split_lines,
    strip_clearsign_armor,
)
from securitytxt.engine.crossref import CrossReferenceVerifier, KeyInspector
from securitytxt.engine.expiration import format_timestamp, resolve_expiration
from securitytxt.engine.models import RunConfig, RunState, ValidationReport
from securitytxt.engine.validators import (
    Decision,
    ValidationContext,
    extract_https_url,
    scheme_of,
    validate,
)
from securitytxt.net.adapter import CachingFetcher, HttpxFetcher, UrlFetcher

logger = logging.getLogger(__name__)

_COUNTERS = {
    FieldKind.CONTACT: "contact_seen",
    FieldKind.EXPIRES: "expires_seen",
    FieldKind.PREFERRED_LANGUAGES: "languages_seen",
    FieldKind.CANONICAL: "canonical_seen",
}


def https_urls(lines: Iterable[ClassifiedLine]) -> List[str]:
    """Every HTTPS URL a validator may request for these lines."""
    urls = []
    for cl in lines:
        if cl.kind in (FieldKind.CONTACT, FieldKind.ENCRYPTION) or cl.kind.is_simple_https:
            if scheme_of(cl.raw_value) == "https":
                url = extract_https_url(cl.raw_value)
                if url:
                    urls.append(url)
    return urls


def normalize_output(lines: List[str]) -> str:
    """Collapse blank line runs, drop trailing blanks, end with one newline."""
    collapsed: List[str] = []
    for line in lines:
        if line == "" and collapsed and collapsed[-1] == "":
            continue
        collapsed.append(line)
    while collapsed and collapsed[-1] == "":
        collapsed.pop()
    if not collapsed:
        return ""
    return "\n".join(collapsed) + "\n"


def _apply(cl: ClassifiedLine, decision: Decision, state: RunState) -> None:
    if decision.accepted:
        state.output.append(decision.line)
        counter = _COUNTERS.get(cl.kind)
        if counter:
            setattr(state, counter, getattr(state, counter) + 1)
        for warning in decision.warnings:
            logger.warning(warning)
            state.warnings.append(warning)
    elif not decision.silent:
        message = f"REMOVED ({decision.reason}): {cl.line}"
        logger.warning(message)
        state.errors.append(message)


def validate_and_format(
    raw_document: str,
    config: Optional[RunConfig] = None,
    fetcher: Optional[UrlFetcher] = None,
    inspector: Optional[KeyInspector] = None,
) -> ValidationReport:
    """
    Validate a security.txt document and return its canonical form.

    Args:
        raw_document: The document text, optionally clear-signed
        config: Policy, signing key and clock for this run
        fetcher: HTTP capability; an httpx-backed fetcher is created if omitted
        inspector: Lists fingerprints of fetched key documents (e.g. GnuPG)

    Raises:
        MissingMandatoryFieldError: no valid Contact line survived filtering
    """
    config = config or RunConfig()
    expires = format_timestamp(
        resolve_expiration(config.current_time(), config.max_age_days, config.key_expiry)
    )

    owned = fetcher is None
    cache = CachingFetcher(fetcher or HttpxFetcher(get_config().http))
    try:
        return _run(raw_document, config, expires, cache, inspector)
    finally:
        if owned:
            cache.close()


def _run(
    raw_document: str,
    config: RunConfig,
    expires: str,
    fetcher: CachingFetcher,
    inspector: Optional[KeyInspector],
) -> ValidationReport:
    state = RunState()

    if raw_document and not raw_document.endswith(("\n", "\r")):
        logger.info("ADDED NEWLINE @EOF")

    lines, was_signed = strip_clearsign_armor(split_lines(raw_document))
    if was_signed:
        message = "REMOVED EXISTING PGP SIGNATURE; the document must be signed again."
        logger.warning(message)
        state.warnings.append(message)

    classified = classify_document([normalize_line(line) for line in lines])

    if config.fetch_workers > 1:
        fetcher.prefetch(https_urls(classified), config.fetch_workers)

    ctx = ValidationContext(
        state=state,
        expires=expires,
        fetcher=fetcher,
        verifier=CrossReferenceVerifier(config.signing_key(), fetcher, inspector),
    )

    for cl in classified:
        _apply(cl, validate(cl, ctx), state)

    if state.contact_seen == 0:
        logger.error("ERROR! VALID MANDATORY CONTACT FIELD IS MISSING.")
        raise MissingMandatoryFieldError("Contact", errors=state.errors, warnings=state.warnings)

    if state.expires_seen == 0:
        message = "ADDED MISSING MANDATORY EXPIRES FIELD."
        logger.warning(message)
        state.warnings.append(message)
        state.output.append(f"Expires: {expires}")
        state.expires_seen += 1

    if state.canonical_seen == 0:
        message = "WARNING! VALID RECOMMENDED CANONICAL FIELD IS MISSING."
        logger.warning(message)
        state.warnings.append(message)

    return ValidationReport(
        document=normalize_output(state.output),
        expires=expires,
        warnings=state.warnings,
        errors=state.errors,
    )
