"""Resolution of user hooks given as an object or a plain callable."""

from __future__ import annotations

from typing import Any, Callable, Optional


def resolve_hook(hook: Any, method: str) -> Optional[Callable[..., Any]]:
    """Return the function to call for *hook*.

    Objects with a callable *method* attribute win over being callable
    themselves, so a class defining both ``complete()`` and ``__call__``
    is used through ``complete()``.  ``None`` removes the hook.

    Raises:
        TypeError: *hook* has no such method and is not callable.
    """
    if hook is None:
        return None
    bound = getattr(hook, method, None)
    if callable(bound):
        return bound
    if callable(hook):
        return hook
    raise TypeError(f"Expected an object with {method}() or a callable, got {hook!r}")
