"""Positional argument list validation.

A parameter specification is an ordered sequence of ParameterDescriptor
objects, one per positional parameter:

    ParameterDescriptor(position=0, required=True, nullable=False,
                        expected_type=TypeSpec.primitive("int"))

Arguments are a mapping of position -> value (or a plain sequence).

Return: list of error messages, in specification order.
If the list is empty, validation succeeded.
"""
from __future__ import annotations

import builtins
import sys
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .errors import ErrorCode, OutOfRangeError, create_out_of_range_error
from .logging_config import get_logger, log_with_context
from .messages import MessageFormatter, MessageTemplates

logger = get_logger(__name__)

Formatter = Callable[[str, Sequence], str]
ErrorFactory = Callable[..., BaseException]


_PRIMITIVE_CHECKS: Dict[str, Callable[[Any], bool]] = {
    "int": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "float": lambda v: isinstance(v, float),
    "bool": lambda v: isinstance(v, bool),
    "str": lambda v: isinstance(v, str),
    "bytes": lambda v: isinstance(v, (bytes, bytearray)),
    "list": lambda v: isinstance(v, list),
    "tuple": lambda v: isinstance(v, tuple),
    "dict": lambda v: isinstance(v, dict),
    "set": lambda v: isinstance(v, (set, frozenset)),
    "callable": callable,
    "iterable": lambda v: isinstance(v, Iterable),
    "object": lambda v: v is not None,
}

_PRIMITIVE_ALIASES = {
    "integer": "int",
    "double": "float",
    "boolean": "bool",
    "string": "str",
    "array": "list",
}

# Builtin classes that are checked as primitives when given directly
_BUILTIN_CLASSES = {
    int: "int",
    float: "float",
    bool: "bool",
    str: "str",
    bytes: "bytes",
    list: "list",
    tuple: "tuple",
    dict: "dict",
    set: "set",
    object: "object",
}


def is_primitive_name(name: str) -> bool:
    return _PRIMITIVE_ALIASES.get(name, name) in _PRIMITIVE_CHECKS


def _resolve_class(name: str) -> Optional[type]:
    """Find a class by dotted name among modules that are already imported.

    Never imports anything, so matching a value has no side effects. A class
    whose module has not been imported has no instances yet.
    """
    parts = name.split(".")
    # Longest loaded module prefix wins, the rest are attributes (nested classes)
    for split in range(len(parts) - 1, -1, -1):
        module_name = ".".join(parts[:split])
        target: Any = sys.modules.get(module_name) if module_name else builtins
        if target is None:
            continue
        for attr in parts[split:]:
            target = getattr(target, attr, None)
            if target is None:
                return None
        return target if isinstance(target, type) else None
    return None


class TypeKind(Enum):
    PRIMITIVE = "primitive"
    NOMINAL = "nominal"


@dataclass(frozen=True)
class TypeSpec:
    """Expected type of an argument: a builtin kind or a class."""
    kind: TypeKind
    name: str
    target: Optional[type] = None

    def __post_init__(self):
        if not isinstance(self.kind, TypeKind):
            raise TypeError(f"Expected a TypeKind, got {self.kind!r}")
        if not isinstance(self.name, str):
            raise TypeError(f"Type name must be a string, got {self.name!r}")
        if self.kind is TypeKind.PRIMITIVE:
            if not is_primitive_name(self.name):
                raise ValueError(f"Unknown primitive type: {self.name!r}")
            if self.target is not None:
                raise ValueError("Primitive types do not take a target class")
        elif self.target is not None and not isinstance(self.target, type):
            raise TypeError(f"Expected a class, got {self.target!r}")

    @classmethod
    def primitive(cls, name: str) -> "TypeSpec":
        return cls(TypeKind.PRIMITIVE, name)

    @classmethod
    def nominal(cls, target: Union[type, str]) -> "TypeSpec":
        if isinstance(target, str):
            return cls(TypeKind.NOMINAL, target)
        if not isinstance(target, type):
            raise TypeError(f"Expected a class or class name, got {target!r}")
        if target.__module__ == "builtins":
            name = target.__qualname__
        else:
            name = f"{target.__module__}.{target.__qualname__}"
        return cls(TypeKind.NOMINAL, name, target)

    def matches(self, value: Any) -> bool:
        if self.kind is TypeKind.PRIMITIVE:
            return _PRIMITIVE_CHECKS[_PRIMITIVE_ALIASES.get(self.name, self.name)](value)
        target = self.target if self.target is not None else _resolve_class(self.name)
        # An instance of an unknown class does not exist
        if target is None:
            return False
        return isinstance(value, target)

    def __str__(self) -> str:
        return self.name


def as_type_spec(value: Union[TypeSpec, type, str]) -> TypeSpec:
    """Normalise a class, a type name or a TypeSpec into a TypeSpec."""
    if isinstance(value, TypeSpec):
        return value
    if isinstance(value, str):
        return TypeSpec.primitive(value) if is_primitive_name(value) else TypeSpec.nominal(value)
    if isinstance(value, type):
        if value in _BUILTIN_CLASSES:
            return TypeSpec.primitive(_BUILTIN_CLASSES[value])
        return TypeSpec.nominal(value)
    raise TypeError(f"Cannot use {value!r} as an expected type")


@dataclass(frozen=True)
class ParameterDescriptor:
    """
    Describes one positional parameter.

    Attributes:
        position: 0-based position of the argument
        required: Whether the argument must be present
        nullable: Whether an explicit None is accepted
        expected_type: Type the argument must conform to, if any
        name: Parameter name, for callers' own reporting
    """
    position: int
    required: bool = True
    nullable: bool = False
    expected_type: Optional[TypeSpec] = None
    name: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.position, int) or isinstance(self.position, bool) or self.position < 0:
            raise ValueError(f"Parameter position must be a non-negative integer, got {self.position!r}")
        if self.expected_type is not None:
            object.__setattr__(self, "expected_type", as_type_spec(self.expected_type))


def _as_lookup(args: Union[Mapping, Sequence]) -> Mapping:
    if isinstance(args, Mapping):
        return args
    if isinstance(args, (str, bytes, bytearray)) or not isinstance(args, Sequence):
        raise TypeError(f"Arguments must be a mapping or a sequence, got {type(args).__name__}")
    return dict(enumerate(args))


class ArgumentListValidator:
    """
    Checks positional arguments against a parameter specification.

    Missing required arguments and type mismatches are reported as messages.
    A specification element that is not a ParameterDescriptor is a caller
    error: the error factory builds an exception which is raised before any
    argument is examined.

    A validator bound to a ConfigManager (see from_config) reads the message
    templates and translations on every call, so a configuration reload
    applies to the next validation. Explicit formatter or templates win.
    """

    def __init__(
        self,
        formatter: Optional[Formatter] = None,
        error_factory: Optional[ErrorFactory] = None,
        templates: Optional[MessageTemplates] = None,
        config_manager=None
    ):
        """
        Args:
            formatter: Callable (template, substitutions) -> message
            error_factory: Callable (message, code, previous, argument) -> exception
            templates: Message templates to pass to the formatter
            config_manager: ConfigManager supplying templates and translations
        """
        self.formatter = formatter
        self.error_factory = error_factory or create_out_of_range_error
        self.templates = templates
        self.config_manager = config_manager

    @classmethod
    def from_config(cls, config_manager=None, **kwargs) -> "ArgumentListValidator":
        """Build a validator that follows the configured templates and translations."""
        if config_manager is None:
            from .config_manager import get_config_manager
            config_manager = get_config_manager()
        return cls(config_manager=config_manager, **kwargs)

    def _message_settings(self) -> Tuple[Formatter, MessageTemplates]:
        if self.config_manager is not None:
            templates, formatter = self.config_manager.get_message_settings()
        else:
            templates, formatter = _DEFAULT_TEMPLATES, _DEFAULT_FORMATTER
        return self.formatter or formatter, self.templates or templates

    def validate(self, args: Union[Mapping, Sequence], spec: Sequence[ParameterDescriptor]) -> List[str]:
        formatter, templates = self._message_settings()
        descriptors = self._check_specification(spec, formatter, templates)
        values = _as_lookup(args)
        errors: List[str] = []

        for param in descriptors:
            pos = param.position
            is_present = pos in values

            if param.required and not is_present:
                errors.append(self._finding(formatter, pos, templates.required, [pos]))
                continue

            value = values[pos] if is_present else None
            is_null_ok = param.nullable and is_present and value is None

            # Absent optional arguments are not type-checked
            expected = param.expected_type
            if expected is not None and is_present:
                if not expected.matches(value) and not is_null_ok:
                    errors.append(self._finding(formatter, pos, templates.type_mismatch, [pos, str(expected)]))
                    continue

        return errors

    def _check_specification(
        self,
        spec: Sequence[ParameterDescriptor],
        formatter: Formatter,
        templates: MessageTemplates
    ) -> List[ParameterDescriptor]:
        descriptors = list(spec)
        for idx, param in enumerate(descriptors):
            if not isinstance(param, ParameterDescriptor):
                log_with_context(logger, "error", "Invalid parameter specification", index=idx, value=repr(param))
                message = formatter(templates.invalid_descriptor, [idx])
                raise self.error_factory(message, ErrorCode.INVALID_SPECIFICATION, None, param)
        return descriptors

    def _finding(self, formatter: Formatter, position: int, template: str, substitutions: List[Any]) -> str:
        message = formatter(template, substitutions)
        log_with_context(logger, "debug", message, position=position)
        return message


_DEFAULT_TEMPLATES = MessageTemplates()
_DEFAULT_FORMATTER = MessageFormatter()
_default_validator = ArgumentListValidator()


def validate_args(args: Union[Mapping, Sequence], spec: Sequence[ParameterDescriptor]) -> List[str]:
    """Validate with the built-in templates and formatter.

    Configuration files are not consulted; use
    ArgumentListValidator.from_config() for configured messages.
    """
    return _default_validator.validate(args, spec)


def format_errors(errors: List[str]) -> str:
    return "; ".join(errors)


__all__ = [
    "TypeKind",
    "TypeSpec",
    "ParameterDescriptor",
    "ArgumentListValidator",
    "OutOfRangeError",
    "as_type_spec",
    "is_primitive_name",
    "validate_args",
    "format_errors",
]
