"""Handler signature validation for strict mode."""

from __future__ import annotations

import inspect
from typing import Any

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def validate_handler_signature(func: Any, template: str, param_names: list[str]) -> None:
    """Check that *func* can be called with one argument per template parameter.

    Raises :class:`TypeError` with an actionable message when the handler
    cannot take exactly ``len(param_names)`` positional arguments.
    """
    name = getattr(func, "__name__", repr(func))
    expected = len(param_names)
    params = list(inspect.signature(func).parameters.values())

    # --- Rule 1: No required keyword-only parameters ---
    required_kw = [p.name for p in params if p.kind is inspect.Parameter.KEYWORD_ONLY and p.default is p.empty]
    if required_kw:
        raise TypeError(
            f"\n\nStrict-mode violation in handler '{name}' [{template}]\n"
            f"  Problem: Keyword-only parameter(s) {', '.join(required_kw)} are never passed.\n"
            f"  Fix:     Give them defaults or read them from get_request().\n"
        )

    if any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params):
        return

    # --- Rule 2: Positional arity must match the template ---
    positional = [p for p in params if p.kind in _POSITIONAL]
    required = [p for p in positional if p.default is p.empty]
    if not (len(required) <= expected <= len(positional)):
        shown = ", ".join(param_names) or "none"
        raise TypeError(
            f"\n\nStrict-mode violation in handler '{name}' [{template}]\n"
            f"  Current: {len(positional)} positional parameter(s), {len(required)} required\n"
            f"  Problem: Template passes {expected} argument(s) ({shown}).\n"
            f"  Fix:     Accept one positional parameter per ':name' segment, in order.\n"
        )
