"""
Error types for schema compilation.

Every error is fatal to the compilation that raised it. Errors carry a code,
a message and the offending type/field, action or resource in ``details``.
"""

from typing import Any, Dict, Optional


class ErrorCode:
    """Standard error codes for the transformer."""

    CONFIG_ERROR = "CONFIG_ERROR"
    UNSUPPORTED_ACTION = "UNSUPPORTED_ACTION"
    DUPLICATE_AUTH_TYPE = "DUPLICATE_AUTH_TYPE"
    DEPENDENCY_RESOLUTION = "DEPENDENCY_RESOLUTION"


class TransformerError(Exception):
    """
    Compilation error with error code and message.

    Subclasses fix the error code; callers normally catch this base class.
    """

    def __init__(self, error_code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for CLI / caller reporting."""
        return {
            "errorCode": self.error_code,
            "message": self.message,
            **self.details,
        }


def _location(type_name: Optional[str], field_name: Optional[str]) -> Optional[str]:
    if type_name is None and field_name is None:
        return None
    return f"{type_name}.{field_name}"


class ConfigError(TransformerError):
    """A selected variant is missing mandatory settings, or a setting is invalid."""

    def __init__(
        self,
        message: str,
        type_name: Optional[str] = None,
        field_name: Optional[str] = None,
        variant: Optional[str] = None,
    ):
        details = {"field": _location(type_name, field_name), "variant": variant}
        super().__init__(
            ErrorCode.CONFIG_ERROR,
            message,
            {k: v for k, v in details.items() if v is not None},
        )
        self.type_name = type_name
        self.field_name = field_name
        self.variant = variant


class UnsupportedActionError(TransformerError):
    """The requested action has no entry in the action catalog."""

    def __init__(self, action: str, type_name: Optional[str] = None, field_name: Optional[str] = None):
        location = _location(type_name, field_name)
        message = f"Unsupported predictions action: {action}"
        if location:
            message = f"{message} (requested by {location})"
        details: Dict[str, Any] = {"action": action}
        if location:
            details["field"] = location
        super().__init__(ErrorCode.UNSUPPORTED_ACTION, message, details)
        self.action = action
        self.type_name = type_name
        self.field_name = field_name


class DuplicateAuthTypeError(TransformerError):
    """An authorization variant appears more than once across primary and additional."""

    def __init__(self, variant: str):
        super().__init__(
            ErrorCode.DUPLICATE_AUTH_TYPE,
            f"Authorization type configured more than once: {variant}",
            {"variant": variant},
        )
        self.variant = variant


class DependencyResolutionError(TransformerError):
    """An artifact references a resource never defined in this compilation."""

    def __init__(self, missing: str, referenced_by: str):
        super().__init__(
            ErrorCode.DEPENDENCY_RESOLUTION,
            f"{referenced_by} depends on undefined resource {missing}",
            {"missing": missing, "referencedBy": referenced_by},
        )
        self.missing = missing
        self.referenced_by = referenced_by
