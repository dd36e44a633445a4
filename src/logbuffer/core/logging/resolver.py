# src/logbuffer/core/logging/resolver.py
"""
Field and tag resolution.

Additional fields and tags for the request's log event can be configured as
literal values or as rules computed from the current request (before the
request is handled) or from the response headers (after it was handled):

    request_fields = {
        "server": socket.gethostname(),                  # literal
        "user_agent": lambda request: request.headers.get("user-agent"),  # computed entry
    }
    request_tags = ["api", lambda request: request.method]
    response_fields = lambda headers: {"content_type": headers.get("content-type")}

Internally every specification is either a `Literal` or a `Computed` value
(`as_spec`). Resolution rules:

  - None resolves to an empty result.
  - A Computed spec is called with the context; its return value is resolved
    again (so it may return a mapping / sequence with computed entries).
  - Entries of a mapping or sequence that are callables are called with the
    same context. Their return values are used as they are.
  - Field keys are converted with `str()`, field values keep their type.
  - Tags are converted with `str()`. Nested sequences are flattened in order.

Errors raised by a rule are *not* caught: a failing rule is a configuration
bug and propagates to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from logbuffer.exceptions import FieldSpecError


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Computed:
    fn: Callable[[Any], Any]

    def __call__(self, context: Any) -> Any:
        return self.fn(context)


FieldSpec = Literal | Computed
TagSpec = Literal | Computed


def as_spec(value: Any) -> Literal | Computed:
    """Wrap a raw setting value into its Literal / Computed variant."""
    if isinstance(value, (Literal, Computed)):
        return value
    if callable(value):
        return Computed(value)
    return Literal(value)


def _evaluate(value: Any, context: Any) -> Any:
    if isinstance(value, Literal):
        return value.value
    if callable(value):
        return value(context)
    return value


def resolve_fields(spec: Any, context: Any) -> dict[str, Any]:
    """
    Resolve a field specification against the context.

    Raises:
        FieldSpecError: if the spec (or the value returned by a rule) is not a mapping.
    """
    value = _evaluate(spec, context)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise FieldSpecError(
            f"Fields must resolve to a mapping, got {type(value).__name__}"
        )

    return {str(k): _evaluate(v, context) for k, v in value.items()}


def resolve_tags(spec: Any, context: Any) -> list[str]:
    """
    Resolve a tag specification against the context into a list of strings.
    """
    value = _evaluate(spec, context)
    if value is None:
        return []

    tags: list[str] = []
    for entry in _iter_entries(value):
        _append_tags(tags, _evaluate(entry, context))
    return tags


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Iterable) and not isinstance(value, (str, bytes, Mapping))


def _iter_entries(value: Any) -> Iterable[Any]:
    if _is_sequence(value):
        return value
    return (value,)


def _append_tags(tags: list[str], value: Any) -> None:
    if value is None:
        return
    if _is_sequence(value):
        for item in value:
            _append_tags(tags, item)
        return
    tags.append(str(value))
