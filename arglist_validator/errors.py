"""
Error handling utilities for the argument list validator.

This module provides the fatal error type raised for malformed parameter
specifications, the default factory that builds it, and the standardized
response helpers used to report validation findings.
"""

import logging
from functools import wraps
from typing import Any, Dict, List, Optional, Callable


# Configure logging for error tracking
logger = logging.getLogger(__name__)


class ErrorType:
    """Standard error type constants."""
    VALIDATION = "validation_error"
    SPECIFICATION = "specification_error"
    UNEXPECTED = "unexpected_error"


class ErrorCode:
    """Machine-readable codes attached to raised failures."""
    INVALID_SPECIFICATION = "invalid_specification"


class OutOfRangeError(ValueError):
    """
    Raised when a value lies outside the set a caller is allowed to pass.

    The validator raises it when an element of the parameter specification
    is not a ParameterDescriptor. It signals a programming error in the
    caller, never a validation finding.

    Attributes:
        message: Human-readable description
        code: Optional machine-readable code (see ErrorCode)
        argument: The offending value
    """

    def __init__(self, message: str = "", code: Optional[str] = None, argument: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.argument = argument


def create_out_of_range_error(
    message: Optional[str] = None,
    code: Optional[str] = None,
    previous: Optional[BaseException] = None,
    argument: Any = None
) -> OutOfRangeError:
    """
    Create a new out of range error.

    Args:
        message: The message, if any
        code: The error code, if any
        previous: The inner exception, if any
        argument: The value that is out of range, if any

    Returns:
        The new (unraised) error
    """
    error = OutOfRangeError(message or "", code, argument)
    if previous is not None:
        error.__cause__ = previous
    return error


def create_error_response(
    error_message: str,
    error_type: str = ErrorType.UNEXPECTED,
    data: Optional[Dict[str, Any]] = None,
    success: bool = False
) -> Dict[str, Any]:
    """
    Create a standardized error response.

    Args:
        error_message: Human-readable error description
        error_type: Type of error (see ErrorType constants)
        data: Caller-specific data to include in response
        success: Whether the operation was successful

    Returns:
        Standardized error response dictionary
    """
    response = {
        "success": success,
        "error": error_message,
        "error_type": error_type
    }

    if data:
        response.update(data)

    if not success:
        logger.error(f"Error ({error_type}): {error_message}")

    return response


def create_success_response(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create a standardized success response.

    Args:
        data: Caller-specific data to include in response

    Returns:
        Standardized success response dictionary
    """
    response = {
        "success": True,
        "error": None,
        "error_type": None
    }
    response.update(data)
    return response


def handle_validation_error(
    error_message: str,
    default_data: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Create a standardized validation error response.

    Args:
        error_message: Validation error message
        default_data: Default data structure to return

    Returns:
        Standardized validation error response
    """
    return create_error_response(
        error_message,
        ErrorType.VALIDATION,
        default_data or {}
    )


def create_validation_response(errors: List[str]) -> Dict[str, Any]:
    """
    Turn a list of validation findings into a standardized response.

    An empty list yields a success response.
    """
    if not errors:
        return create_success_response({"errors": []})
    return handle_validation_error("; ".join(errors), {"errors": list(errors)})


def handle_specification_errors(
    default_data: Optional[Dict[str, Any]] = None,
    operation_name: str = "argument validation"
) -> Callable:
    """
    Decorator that reports malformed specifications as error responses.

    Only OutOfRangeError is converted; anything else propagates.

    Args:
        default_data: Default data structure to return on errors
        operation_name: Name of the operation for error messages

    Returns:
        Decorator function
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            try:
                return func(*args, **kwargs)
            except OutOfRangeError as e:
                data = dict(default_data or {})
                data["code"] = e.code
                return create_error_response(
                    f"Invalid specification during {operation_name}: {e.message}",
                    ErrorType.SPECIFICATION,
                    data
                )

        return wrapper
    return decorator
