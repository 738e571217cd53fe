"""
Build parameter specifications from Python callables.

The validator itself performs no introspection. These helpers translate a
function signature into ParameterDescriptor objects and call arguments into
the position -> value mapping the validator expects.
"""

import inspect
import types
import typing
from typing import Any, Callable, Dict, List, Optional, Tuple

from .param_validator import ParameterDescriptor, TypeSpec, as_type_spec

UNION_TYPES = (typing.Union, types.UnionType)

_POSITIONAL_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


def _positional_parameters(func: Callable) -> List[inspect.Parameter]:
    params = []
    for param in inspect.signature(func).parameters.values():
        # Nothing after *args can be passed positionally
        if param.kind not in _POSITIONAL_KINDS:
            break
        params.append(param)
    return params


def _resolve_hints(func: Callable) -> Dict[str, Any]:
    try:
        return typing.get_type_hints(func)
    except (NameError, AttributeError, SyntaxError, TypeError):
        pass

    # Some forward reference is unresolvable: resolve the others one at a time
    target = inspect.unwrap(func)
    namespace = getattr(target, "__globals__", {})
    hints = {}
    for name, hint in (getattr(target, "__annotations__", None) or {}).items():
        if isinstance(hint, str):
            try:
                hint = eval(hint, namespace)
            except (NameError, AttributeError, SyntaxError, TypeError):
                continue
        hints[name] = hint
    return hints


def type_from_annotation(hint: Any) -> Tuple[Optional[TypeSpec], bool]:
    """
    Translate a type hint into an expected type.

    Returns:
        (expected type or None, whether the hint admits None)
    """
    if hint is inspect.Parameter.empty or hint is typing.Any:
        return None, True
    if hint is None or hint is type(None):
        return None, True

    origin = typing.get_origin(hint)
    if origin in UNION_TYPES:
        members = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        allows_none = len(members) < len(typing.get_args(hint))
        # Optional[X] keeps X; wider unions cannot be expressed as one type
        if len(members) == 1:
            expected, _ = type_from_annotation(members[0])
            return expected, allows_none
        return None, allows_none

    if origin is not None:
        # list[int] -> list, dict[str, int] -> dict
        hint = origin

    if isinstance(hint, type):
        return as_type_spec(hint), False
    return None, False


def descriptors_from_signature(func: Callable) -> List[ParameterDescriptor]:
    """
    Describe the positional parameters of a callable.

    A parameter is required when it has no default. It accepts None when it
    is unannotated, annotated as Optional, or defaults to None.

    Args:
        func: Any callable inspect.signature() accepts

    Returns:
        One ParameterDescriptor per positional parameter, in order
    """
    hints = _resolve_hints(func)
    descriptors = []

    for position, param in enumerate(_positional_parameters(func)):
        annotation = hints.get(param.name, inspect.Parameter.empty)
        expected, allows_none = type_from_annotation(annotation)
        has_default = param.default is not inspect.Parameter.empty

        descriptors.append(ParameterDescriptor(
            position=position,
            required=not has_default,
            nullable=allows_none or (has_default and param.default is None),
            expected_type=expected,
            name=param.name,
        ))

    return descriptors


def bind_arguments(func: Callable, *args, **kwargs) -> Dict[int, Any]:
    """
    Map call arguments to parameter positions.

    Keyword arguments naming a positional parameter are placed at that
    parameter's position; other keywords are ignored.
    """
    positions = {param.name: i for i, param in enumerate(_positional_parameters(func))}
    values = dict(enumerate(args))
    for name, value in kwargs.items():
        if name in positions:
            values[positions[name]] = value
    return values
