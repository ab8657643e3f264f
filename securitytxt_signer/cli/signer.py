"""
securitytxt-signer CLI: RFC 9116 security.txt formatter & PGP signer.

Usage examples:
    securitytxt-signer input.txt
    securitytxt-signer input.txt 0x1234ABCD
    securitytxt-signer input.txt 0x1234ABCD security.txt

Removes lines not matching the specification and HTTPS URLs not working,
checks for required fields and updates the Expires field to today + max age
days (unless the PGP key expires before that). Optionally signs the result and
warns on Encryption fields not matching the signing key. A previously signed
file can be given as input to re-sign it with a fresh Expires field.
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, TextIO

from securitytxt.base.config import PolicyConfig, SignerConfig, get_config, setup_logging
from securitytxt.base.exceptions import KeyLookupError, MissingMandatoryFieldError, SignError, ToolMissingError
from securitytxt.engine.assembler import validate_and_format
from securitytxt.engine.models import RunConfig, SigningKey
from securitytxt.errors import ErrorCode, SecurityTxtError, handle_error
from securitytxt.gpg.keyring import GnuPGKeyRing, KeyRing, is_key_id
from securitytxt.net.adapter import HttpxFetcher, UrlFetcher

logger = logging.getLogger(__name__)

SEPARATOR = "---"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="securitytxt-signer",
        description="RFC 9116 helper; security.txt formatter & PGP signer",
    )
    parser.add_argument("input", help="security.txt to validate (may already be signed)")
    parser.add_argument("key", nargs="?", help="signing key ID, 0x followed by 8-40 hex digits")
    parser.add_argument("output", nargs="?", help="where to save the signed file ('-' for stdout)")
    parser.add_argument("--max-age-days", type=int, default=None, help="maximum Expires lifetime in days")
    parser.add_argument("--workers", type=int, default=None, help="concurrent URL checks")
    parser.add_argument("--yes", action="store_true", help="sign without asking for confirmation")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    return parser


def _effective_config(args: argparse.Namespace) -> SignerConfig:
    base = get_config()
    policy = PolicyConfig(max_age_days=args.max_age_days) if args.max_age_days is not None else base.policy
    http = replace(base.http, fetch_workers=args.workers) if args.workers is not None else base.http
    log = replace(base.log, level=args.log_level) if args.log_level else base.log
    return SignerConfig(policy=policy, http=http, gpg=base.gpg, log=log, debug=base.debug)


def _confirm(key: SigningKey, stdin: TextIO, stderr: TextIO) -> None:
    expiry = key.expires_at.isoformat() if key.expires_at else "never"
    stderr.write(
        f"Is this information correct? Do you want to sign with key:\n"
        f"0x{key.fingerprint} (expires: {expiry})\n(y/N) "
    )
    stderr.flush()
    reply = stdin.readline().strip()
    if reply.lower() != "y":
        raise SignError("Aborting...", code=ErrorCode.SIGN_ABORTED, details={"fingerprint": key.fingerprint})


def main(
    argv: Optional[List[str]] = None,
    keyring: Optional[KeyRing] = None,
    fetcher: Optional[UrlFetcher] = None,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
) -> int:
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    args = build_parser().parse_args(argv)

    try:
        config = _effective_config(args)
    except SecurityTxtError as e:
        stderr.write(f"ERROR! {e.message}\n")
        return 1
    setup_logging(config)

    infile = Path(args.input)
    if not infile.is_file():
        stderr.write(f"ERROR! Input file not found ({infile})\n")
        return 1

    key: Optional[SigningKey] = None
    if is_key_id(args.key):
        keyring = keyring or GnuPGKeyRing(config.gpg)
        try:
            if isinstance(keyring, GnuPGKeyRing):
                keyring.ensure_available()
            key = keyring.key_info(args.key)
        except (ToolMissingError, KeyLookupError) as e:
            stderr.write(f"ERROR! {e.message}\n")
            return 1
        requested = args.key[2:].upper()
        if key.fingerprint != requested:
            logger.info(f"EXPANDED 0x{requested} TO 0x{key.fingerprint}")
    else:
        logger.warning("Valid key ID not specified; only validating & formatting, not saving.")

    output = args.output or "-"
    if key is not None:
        if args.output is None:
            logger.warning("Output file not specified; printing to stdout.")
        elif output != "-" and Path(output).exists():
            logger.warning(f"The output file ({output}) already exists and will be overwritten.")

    run_config = RunConfig.for_key(
        key,
        max_age_days=config.policy.max_age_days,
        fetch_workers=config.http.fetch_workers,
    )

    try:
        text = infile.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        stderr.write(f"ERROR! {handle_error(e, context=f'reading {infile}').message}\n")
        return 1

    owned = fetcher is None
    fetcher = fetcher or HttpxFetcher(config.http)
    try:
        report = validate_and_format(
            text,
            run_config,
            fetcher=fetcher,
            inspector=keyring if key is not None else None,
        )
    except MissingMandatoryFieldError as e:
        stderr.write(f"ERROR! {e.message}\n")
        return 1
    finally:
        if owned:
            fetcher.close()

    preview = stderr if key is not None else stdout
    preview.write(f"{SEPARATOR}\n{report.document}{SEPARATOR}\n")

    if key is None:
        return 0

    try:
        if not args.yes:
            _confirm(key, stdin, stderr)
        signed = keyring.clearsign(report.document, key.fingerprint)
    except SignError as e:
        if e.code == ErrorCode.SIGN_ABORTED:
            stderr.write(f"{e.message}\n")
            return 1
        stderr.write(f"ERROR! {e.message}\n")
        stderr.write(str(e.details.get("stderr", "")) + "\n")
        return 1

    if output == "-":
        stdout.write(signed)
    else:
        Path(output).write_text(signed, encoding="utf-8")
        stderr.write(f'Saved as "{output}"\n')
    return 0


if __name__ == "__main__":
    sys.exit(main())
