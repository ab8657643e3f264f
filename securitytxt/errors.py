"""Structured error taxonomy for the security.txt signer."""
#
# PURPOSE:
# Every failure the signer can surface carries a searchable error code, a
# human-readable message and an optional details dictionary.
#
# ERROR CODE FORMAT:
# - DOC_XXX: Document validation errors
# - FETCH_XXX: HTTP fetch errors
# - KEY_XXX: Signing key lookup errors
# - SIGN_XXX: Clear-signing errors
# - TOOL_XXX: External tool availability errors
# - CONFIG_XXX: Configuration errors
#
# USAGE:
#   from securitytxt.errors import SecurityTxtError, ErrorCode
#
#   raise SecurityTxtError(
#       ErrorCode.DOC_MISSING_MANDATORY_FIELD,
#       "Valid mandatory Contact field is missing",
#       details={"field": "Contact"}
#   )
#
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    # Document Errors
    DOC_MISSING_MANDATORY_FIELD = "DOC_001"
    DOC_UNREADABLE = "DOC_002"

    # Fetch Errors
    FETCH_FAILED = "FETCH_001"
    FETCH_BAD_STATUS = "FETCH_002"
    FETCH_TIMEOUT = "FETCH_003"

    # Key Errors
    KEY_NOT_FOUND = "KEY_001"
    KEY_INVALID_ID = "KEY_002"
    KEY_LOOKUP_FAILED = "KEY_003"

    # Signing Errors
    SIGN_FAILED = "SIGN_001"
    SIGN_ABORTED = "SIGN_002"

    # Tool Errors
    TOOL_NOT_INSTALLED = "TOOL_001"

    # Config Errors
    CONFIG_INVALID = "CONFIG_001"


class SecurityTxtError(Exception):
    """
    Base exception class for the signer with structured error information.

    Attributes:
        code: ErrorCode enum value (e.g., "DOC_001")
        message: Human-readable error message
        details: Optional dictionary with additional context
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecurityTxtError":
        return cls(ErrorCode(data["code"]), data["message"], data.get("details", {}))


def handle_error(error: Exception, context: Optional[str] = None) -> SecurityTxtError:
    """
    Convert a generic exception to a SecurityTxtError.

    Args:
        error: The original exception
        context: Optional context string (e.g., "while fetching Policy URL")

    Returns:
        SecurityTxtError with a best-effort code and the original message
    """
    if isinstance(error, SecurityTxtError):
        return error

    error_type = type(error).__name__
    if "Timeout" in error_type:
        code = ErrorCode.FETCH_TIMEOUT
    elif "FileNotFound" in error_type or "IsADirectory" in error_type:
        code = ErrorCode.DOC_UNREADABLE
    else:
        code = ErrorCode.FETCH_FAILED

    message = str(error) or error_type
    if context:
        message = f"{context}: {message}"

    return SecurityTxtError(
        code=code,
        message=message,
        details={"original_type": error_type, "original_message": str(error)},
    )


__all__ = ["ErrorCode", "SecurityTxtError", "handle_error"]
