# ============================================================================
# securitytxt/__init__.py
# Package Marker for the security.txt Engine
# ============================================================================
#
# PURPOSE:
# The "securitytxt" package holds everything needed to validate, normalize and
# prepare an RFC 9116 security.txt document for signing.
#
# LAYOUT:
# - base/: configuration, logging setup, exception hierarchy
# - engine/: line classifier, field validators, expiration resolver, assembler
# - net/: HTTP fetch capability (httpx)
# - gpg/: key lookup, key inspection and clear-signing capability (GnuPG)
#
# ============================================================================

from securitytxt.engine.assembler import validate_and_format
from securitytxt.engine.models import RunConfig, SigningKey, ValidationReport

__all__ = ["validate_and_format", "RunConfig", "SigningKey", "ValidationReport"]
