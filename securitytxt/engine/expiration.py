"""
securitytxt/engine/expiration.py
Computes the effective Expires timestamp.

The document never outlives the policy maximum age, and never outlives the
key that signs it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from securitytxt.engine.models import as_utc

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_timestamp(value: datetime) -> str:
    """Render a UTC timestamp as RFC 3339 with a literal Z suffix."""
    return as_utc(value).strftime(TIMESTAMP_FORMAT)


def resolve_expiration(
    now: datetime,
    max_age_days: int,
    key_expiry: Optional[datetime] = None,
) -> datetime:
    """
    Return now + max_age_days, capped by the signing key's expiration.

    A key expiring exactly at the candidate instant wins the tie.
    """
    candidate = as_utc(now).replace(microsecond=0) + timedelta(days=max_age_days)

    if key_expiry is None:
        logger.info(f"USING EXPIRE (max {max_age_days} days): {format_timestamp(candidate)}")
        return candidate

    key_expiry = as_utc(key_expiry).replace(microsecond=0)
    logger.debug(f"Comparing {format_timestamp(candidate)} to key expiry {format_timestamp(key_expiry)}")
    if candidate >= key_expiry:
        logger.info(f"USING EXPIRE (from key): {format_timestamp(key_expiry)}")
        return key_expiry

    logger.info(f"USING EXPIRE (max {max_age_days} days): {format_timestamp(candidate)}")
    return candidate
