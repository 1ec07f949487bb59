"""Middleware — Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request: Request, next: Next) -> AnyResponse

Built-in middleware:
    PublicFiles -- Serve the public directory under a URL prefix
"""

from perch.middleware.protocol import AnyResponse, Middleware, Next
from perch.middleware.public import PublicFiles

__all__ = ["AnyResponse", "Middleware", "Next", "PublicFiles"]
