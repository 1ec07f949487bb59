"""HTTP primitives — immutable Request, Response, and their mappings."""

from perch.http.headers import Headers
from perch.http.query import QueryParams
from perch.http.request import Request
from perch.http.response import Redirect, Response, StreamingResponse

__all__ = ["Headers", "QueryParams", "Redirect", "Request", "Response", "StreamingResponse"]
