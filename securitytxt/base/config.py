# ============================================================================
# securitytxt/base/config.py
# Application Configuration Management
# ============================================================================
#
# PURPOSE:
# Defines every tunable of the signer in one place. Values come from
# SECURITYTXT_* environment variables, with defaults matching RFC 9116
# recommendations (an Expires value less than a year in the future).
#
# KEY CONCEPTS:
# 1. Frozen dataclasses: one immutable group per concern
# 2. Environment variables: e.g. SECURITYTXT_MAX_AGE_DAYS=180
# 3. Singleton: get_config() lazily builds one shared SignerConfig
#
# ============================================================================

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from securitytxt.base.exceptions import SecurityTxtError
from securitytxt.errors import ErrorCode

logger = logging.getLogger(__name__)

# RFC 9116, 2.5.5 recommends an Expires value less than a year in the future.
DEFAULT_MAX_AGE_DAYS = 364


@dataclass(frozen=True)
class PolicyConfig:
    # Maximum lifetime of the document, in calendar days from "now"
    max_age_days: int = DEFAULT_MAX_AGE_DAYS


@dataclass(frozen=True)
class HttpConfig:
    timeout_seconds: float = 10.0
    user_agent: str = "securitytxt-signer/1.0"
    verify_tls: bool = True
    # Values above 1 prefetch all HTTPS URLs of a document concurrently
    fetch_workers: int = 1


@dataclass(frozen=True)
class GpgConfig:
    binary: str = "gpg"
    timeout_seconds: float = 120.0


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    file_enabled: bool = False
    file_path: Path = field(default_factory=lambda: Path.home() / ".securitytxt-signer.log")
    max_file_size_mb: int = 10
    backup_count: int = 5


@dataclass
class SignerConfig:
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    gpg: GpgConfig = field(default_factory=GpgConfig)
    log: LogConfig = field(default_factory=LogConfig)
    debug: bool = False

    def __post_init__(self):
        if self.policy.max_age_days < 1:
            raise SecurityTxtError(
                ErrorCode.CONFIG_INVALID,
                f"max_age_days must be a positive integer, got {self.policy.max_age_days}",
            )
        if self.http.fetch_workers < 1:
            raise SecurityTxtError(
                ErrorCode.CONFIG_INVALID,
                f"fetch_workers must be at least 1, got {self.http.fetch_workers}",
            )

    @classmethod
    def from_env(cls) -> "SignerConfig":
        try:
            policy = PolicyConfig(
                max_age_days=int(os.getenv("SECURITYTXT_MAX_AGE_DAYS", str(DEFAULT_MAX_AGE_DAYS))),
            )
            http = HttpConfig(
                timeout_seconds=float(os.getenv("SECURITYTXT_HTTP_TIMEOUT", "10")),
                user_agent=os.getenv("SECURITYTXT_USER_AGENT", "securitytxt-signer/1.0"),
                verify_tls=os.getenv("SECURITYTXT_VERIFY_TLS", "true").lower() == "true",
                fetch_workers=int(os.getenv("SECURITYTXT_FETCH_WORKERS", "1")),
            )
            gpg = GpgConfig(
                binary=os.getenv("SECURITYTXT_GPG_BINARY", "gpg"),
                timeout_seconds=float(os.getenv("SECURITYTXT_GPG_TIMEOUT", "120")),
            )
        except ValueError as e:
            raise SecurityTxtError(ErrorCode.CONFIG_INVALID, f"Invalid environment setting: {e}") from e

        log_file = os.getenv("SECURITYTXT_LOG_FILE")
        log = LogConfig(
            level=os.getenv("SECURITYTXT_LOG_LEVEL", "INFO"),
            file_enabled=bool(log_file),
            file_path=Path(log_file) if log_file else LogConfig().file_path,
        )

        return cls(
            policy=policy,
            http=http,
            gpg=gpg,
            log=log,
            debug=os.getenv("SECURITYTXT_DEBUG", "false").lower() == "true",
        )


_config: Optional[SignerConfig] = None


def get_config() -> SignerConfig:
    global _config
    if _config is None:
        _config = SignerConfig.from_env()
    return _config


def set_config(config: Optional[SignerConfig]) -> None:
    global _config
    _config = config


def setup_logging(config: Optional[SignerConfig] = None) -> None:
    cfg = config or get_config()

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if cfg.log.file_enabled:
        from logging.handlers import RotatingFileHandler
        file_handler = RotatingFileHandler(
            cfg.log.file_path,
            maxBytes=cfg.log.max_file_size_mb * 1024 * 1024,
            backupCount=cfg.log.backup_count,
        )
        handlers.append(file_handler)

    level = "DEBUG" if cfg.debug else cfg.log.level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=cfg.log.format,
        handlers=handlers,
        force=True,
    )
