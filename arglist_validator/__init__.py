"""
Argument List Validator Package

Checks positional call arguments against a parameter specification and
reports missing or mistyped arguments as human-readable messages.
"""

__version__ = "0.1.0"

from .errors import OutOfRangeError, create_out_of_range_error
from .messages import MessageFormatter, MessageTemplates, format_message
from .param_validator import (
    ArgumentListValidator,
    ParameterDescriptor,
    TypeKind,
    TypeSpec,
    format_errors,
    validate_args,
)
from .signature import bind_arguments, descriptors_from_signature

__all__ = [
    "ArgumentListValidator",
    "ParameterDescriptor",
    "TypeKind",
    "TypeSpec",
    "OutOfRangeError",
    "create_out_of_range_error",
    "MessageFormatter",
    "MessageTemplates",
    "format_message",
    "validate_args",
    "format_errors",
    "descriptors_from_signature",
    "bind_arguments",
]
