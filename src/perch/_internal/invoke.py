"""Call sync or async handlers uniformly.

Route handlers and hooks can be ``def`` or ``async def``; a
``StaticResponder`` is an object whose ``__call__`` is async. Anything
that calls user-provided code goes through ``invoke``.
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it is awaitable."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
