"""Files from the public directory — the file handler and static route targets.

    FileHandler -- resolves a request path and builds the file response
    StaticResponder -- route handler that always serves one file
    static -- factory for StaticResponder
"""

from perch.files.handler import FileHandler
from perch.files.responder import StaticResponder, static

__all__ = ["FileHandler", "StaticResponder", "static"]
