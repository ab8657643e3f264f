from typing import Any, Dict, Optional

from securitytxt.errors import ErrorCode, SecurityTxtError


class FetchError(SecurityTxtError):
    """Raised when a URL cannot be fetched or does not answer with a usable status."""
    def __init__(self, url: str, message: str, status: Optional[int] = None, code: ErrorCode = ErrorCode.FETCH_FAILED):
        super().__init__(code, message, details={"url": url, "status": status})
        self.url = url
        self.status = status


class KeyLookupError(SecurityTxtError):
    """Raised when a key id cannot be resolved to a secret signing key."""
    def __init__(self, key_id: str, message: str, code: ErrorCode = ErrorCode.KEY_NOT_FOUND):
        super().__init__(code, message, details={"key_id": key_id})
        self.key_id = key_id


class SignError(SecurityTxtError):
    """Raised when clear-signing the canonical document fails."""
    def __init__(self, message: str, code: ErrorCode = ErrorCode.SIGN_FAILED, details: Optional[Dict[str, Any]] = None):
        super().__init__(code, message, details=details)


class ToolMissingError(SecurityTxtError):
    """Raised when a required external binary is not on PATH."""
    def __init__(self, tool: str, purpose: str = ""):
        message = f"This script requires {tool} {purpose}".rstrip() + "!"
        super().__init__(ErrorCode.TOOL_NOT_INSTALLED, message, details={"tool": tool})
        self.tool = tool


class ValidationError(SecurityTxtError):
    """Base class for fatal document validation failures."""


class MissingMandatoryFieldError(ValidationError):
    """Raised when no valid line of a mandatory field survives filtering."""
    def __init__(self, missing_field: str, errors: Optional[list] = None, warnings: Optional[list] = None):
        super().__init__(
            ErrorCode.DOC_MISSING_MANDATORY_FIELD,
            f"VALID MANDATORY {missing_field.upper()} FIELD IS MISSING.",
            details={"field": missing_field},
        )
        self.missing_field = missing_field
        self.errors = list(errors or [])
        self.warnings = list(warnings or [])
