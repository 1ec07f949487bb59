"""File handler — turns a request path into a file response.

The single place that reads files from the public directory. Route
targets (``StaticResponder``) and the ``PublicFiles`` mount both delegate
here, so every served file gets the same treatment:

- path resolution confined to the directory (``..`` and symlinks that
  escape it are rejected with 403)
- ``<path>``, ``<path>.html`` and ``<path>/index.html`` lookup
- MIME type from the file name
- ``Cache-Control``, ``ETag``, ``Last-Modified`` and 304 answers to
  ``If-None-Match`` / ``If-Modified-Since``
- precompressed ``.br`` / ``.gz`` siblings picked by ``Accept-Encoding``
- single-range ``Range`` requests (206 / 416)
- bodies larger than ``chunk_size`` streamed from disk

Usage::

    handler = FileHandler("public", cache_control="public, max-age=600")
    response = await handler(request)  # serves request.path
"""

import logging
import mimetypes
from collections.abc import Iterator
from datetime import UTC
from email.utils import formatdate, parsedate_to_datetime
from os import stat_result
from pathlib import Path

from perch.errors import (
    ConfigurationError,
    Forbidden,
    MethodNotAllowed,
    NotFound,
    RangeNotSatisfiable,
)
from perch.http.headers import Headers
from perch.http.request import Request
from perch.http.response import Response, StreamingResponse

logger = logging.getLogger("perch.files")

# Content-Coding -> file suffix of the precompressed sibling
ENCODING_SUFFIXES: dict[str, str] = {"br": ".br", "gzip": ".gz"}

# Bodies up to this many bytes are read whole; larger ones stream
DEFAULT_CHUNK_SIZE = 64 * 1024

_SERVE_METHODS = frozenset({"GET", "HEAD"})
_ALLOWED_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

_TEXTUAL_TYPES = frozenset(
    {"application/javascript", "application/json", "application/xml", "image/svg+xml"}
)


class FileHandler:
    """Serves files from one directory with one cache-control policy.

    Safe to share between any number of routes and concurrent requests:
    all state is fixed at construction and files are only read.
    """

    __slots__ = ("_cache_control", "_chunk_size", "_directory", "_index", "_precompressed")

    def __init__(
        self,
        directory: str | Path | None,
        cache_control: str | None = "public, max-age=3600",
        *,
        index: str = "index.html",
        precompressed: tuple[str, ...] = ("br", "gzip"),
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if directory is None or str(directory) == "":
            msg = "No public directory configured (AppConfig.public_dir is unset)."
            raise ConfigurationError(msg)

        resolved = Path(directory).resolve()
        if not resolved.is_dir():
            msg = f"Public directory {str(resolved)!r} does not exist or is not a directory."
            raise ConfigurationError(msg)

        unknown = [enc for enc in precompressed if enc not in ENCODING_SUFFIXES]
        if unknown:
            msg = (
                f"Unsupported precompressed encodings {unknown!r}; "
                f"choose from {sorted(ENCODING_SUFFIXES)!r}."
            )
            raise ConfigurationError(msg)

        self._directory = resolved
        self._cache_control = cache_control
        self._index = index
        self._precompressed = precompressed
        self._chunk_size = chunk_size

    def __repr__(self) -> str:
        return f"FileHandler({str(self._directory)!r}, cache_control={self._cache_control!r})"

    @property
    def directory(self) -> Path:
        """Absolute root every served file must live under."""
        return self._directory

    @property
    def cache_control(self) -> str | None:
        """``Cache-Control`` value sent with every file, or ``None``."""
        return self._cache_control

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def match(self, path: str) -> Path | None:
        """Resolve a URL path to a file under the directory.

        Tries the exact file, then ``<path>.html``, then ``<path>/<index>``.
        Returns ``None`` when nothing matches.
        Raises ``Forbidden`` if the path escapes the directory.
        """
        relative = path.lstrip("/")
        try:
            base = (self._directory / relative).resolve() if relative else self._directory
        except (OSError, ValueError):
            return None
        if not base.is_relative_to(self._directory):
            raise Forbidden(f"{path!r} is outside the public directory")

        candidates = [base]
        if relative and base != self._directory:
            candidates.append(base.with_name(base.name + ".html"))
        candidates.append(base / self._index)

        for candidate in candidates:
            try:
                resolved = candidate.resolve()
                if resolved.is_relative_to(self._directory) and resolved.is_file():
                    return resolved
            except (OSError, ValueError):
                # Names the OS refuses (too long, invalid bytes) cannot exist
                continue
        return None

    # ------------------------------------------------------------------
    # Serving
    # ------------------------------------------------------------------

    async def __call__(self, request: Request) -> Response | StreamingResponse:
        """Serve the file addressed by ``request.path``.

        Raises ``NotFound``, ``Forbidden``, ``MethodNotAllowed`` or
        ``RangeNotSatisfiable``; the request pipeline turns these into
        error responses.
        """
        if request.method == "OPTIONS":
            return Response(body="").with_header("Allow", ", ".join(sorted(_ALLOWED_METHODS)))
        if request.method not in _SERVE_METHODS:
            raise MethodNotAllowed(_ALLOWED_METHODS)

        file_path = self.match(request.path)
        if file_path is None:
            logger.debug("No file for %s in %s", request.path, self._directory)
            raise NotFound(f"No file matches {request.path!r}")

        return self.serve(file_path, request.headers)

    def serve(self, file_path: Path, headers: Headers) -> Response | StreamingResponse:
        """Build the response for an already-resolved *file_path*."""
        content_type = guess_content_type(file_path)
        variants = self._variants(file_path)
        encoding, source = self._negotiate(variants, headers, file_path)

        stat = source.stat()
        etag = make_etag(stat)
        last_modified = formatdate(stat.st_mtime, usegmt=True)

        response = Response(body=b"", content_type=content_type).with_header(
            "Accept-Ranges", "bytes"
        )
        if self._cache_control:
            response = response.with_header("Cache-Control", self._cache_control)
        response = response.with_header("ETag", etag).with_header("Last-Modified", last_modified)
        if variants:
            response = response.with_header("Vary", "Accept-Encoding")

        if is_not_modified(headers, etag, stat.st_mtime):
            logger.debug("304 %s", source)
            return response.with_status(304)

        if encoding is not None:
            logger.debug("200 %s (%s)", source, encoding)
            response = response.with_header("Content-Encoding", encoding)
            return self._attach_body(response, source, 0, stat.st_size)

        byte_range = None
        range_header = headers.get("range")
        if range_header and _if_range_matches(headers.get("if-range"), etag, last_modified):
            byte_range = parse_range(range_header, stat.st_size)

        if byte_range is None:
            logger.debug("200 %s", source)
            return self._attach_body(response, source, 0, stat.st_size)

        start, end = byte_range
        logger.debug("206 %s bytes %d-%d", source, start, end)
        response = response.with_status(206).with_header(
            "Content-Range", f"bytes {start}-{end}/{stat.st_size}"
        )
        return self._attach_body(response, source, start, end - start + 1)

    def _attach_body(
        self,
        response: Response,
        source: Path,
        start: int,
        length: int,
    ) -> Response | StreamingResponse:
        """Give *response* ``length`` bytes of *source* from ``start``.

        Small bodies are read in one go. Anything over ``chunk_size`` becomes
        a ``StreamingResponse`` that reads the file lazily.
        """
        if length <= self._chunk_size:
            with source.open("rb") as fh:
                fh.seek(start)
                return response.with_body(fh.read(length))
        return StreamingResponse(
            iter_file(source, start, length, self._chunk_size),
            status=response.status,
            content_type=response.content_type,
            headers=response.headers,
            content_length=length,
        )

    def _variants(self, file_path: Path) -> dict[str, Path]:
        """Precompressed siblings of *file_path* that exist on disk."""
        found: dict[str, Path] = {}
        for encoding in self._precompressed:
            sibling = file_path.with_name(file_path.name + ENCODING_SUFFIXES[encoding])
            if sibling.is_file():
                found[encoding] = sibling
        return found

    def _negotiate(
        self,
        variants: dict[str, Path],
        headers: Headers,
        file_path: Path,
    ) -> tuple[str | None, Path]:
        """Pick the first configured encoding the client accepts."""
        if not variants:
            return None, file_path
        accepted = parse_accept_encoding(headers)
        for encoding in self._precompressed:
            if encoding not in variants:
                continue
            quality = accepted.get(encoding, accepted.get("*", 0.0))
            if quality > 0:
                return encoding, variants[encoding]
        return None, file_path


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def guess_content_type(file_path: Path) -> str:
    """MIME type for *file_path*, with a UTF-8 charset for text."""
    content_type, _ = mimetypes.guess_type(file_path.name)
    if content_type is None:
        return "application/octet-stream"
    if content_type.startswith("text/") or content_type in _TEXTUAL_TYPES:
        return f"{content_type}; charset=utf-8"
    return content_type


def iter_file(path: Path, start: int, length: int, chunk_size: int) -> Iterator[bytes]:
    """Yield up to *length* bytes of *path* from *start*, *chunk_size* at a time.

    The file is opened on the first ``next()`` and closed when the
    generator finishes or is closed.
    """
    with path.open("rb") as fh:
        fh.seek(start)
        remaining = length
        while remaining > 0:
            chunk = fh.read(min(chunk_size, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk


def make_etag(stat: stat_result) -> str:
    """Strong validator from file size and modification time."""
    return f'"{stat.st_size:x}-{stat.st_mtime_ns:x}"'


def is_not_modified(headers: Headers, etag: str, mtime: float) -> bool:
    """Whether the client's cached copy is still valid.

    ``If-None-Match`` wins when present (weak comparison, ``*`` matches
    anything); ``If-Modified-Since`` is only consulted without it.
    """
    if "if-none-match" in headers:
        tags = headers.get_tokens("if-none-match")
        return "*" in tags or _strip_weak(etag) in {_strip_weak(tag) for tag in tags}

    since = headers.get("if-modified-since")
    if not since:
        return False
    try:
        client_time = parsedate_to_datetime(since)
    except (TypeError, ValueError):
        return False
    if client_time.tzinfo is None:
        client_time = client_time.replace(tzinfo=UTC)
    # HTTP dates carry whole seconds
    return int(mtime) <= client_time.timestamp()


def _strip_weak(tag: str) -> str:
    return tag[2:] if tag.startswith("W/") else tag


def _if_range_matches(if_range: str | None, etag: str, last_modified: str) -> bool:
    """``If-Range`` allows a partial response only for the current validator."""
    if if_range is None:
        return True
    return if_range.strip() in (etag, last_modified)


def _digits_or_empty(value: str) -> bool:
    """Empty, or ASCII digits only (``str.isdigit`` also accepts ``²``)."""
    return not value or (value.isascii() and value.isdigit())


def parse_range(value: str, size: int) -> tuple[int, int] | None:
    """Parse a ``Range`` header into an inclusive ``(start, end)`` pair.

    Returns ``None`` when the header should be ignored (other units,
    multiple ranges, malformed syntax) and the full body served.
    Raises ``RangeNotSatisfiable`` when the range lies outside the file.
    """
    unit, _, ranges = value.partition("=")
    if unit.strip().lower() != "bytes" or "," in ranges:
        return None
    first, sep, last = ranges.strip().partition("-")
    if not sep or not _digits_or_empty(first) or not _digits_or_empty(last):
        return None

    if not first:
        if not last:
            return None
        suffix = int(last)
        if suffix == 0 or size == 0:
            raise RangeNotSatisfiable(size)
        return max(size - suffix, 0), size - 1

    start = int(first)
    end = int(last) if last else size - 1
    if end < start:
        return None
    if start >= size:
        raise RangeNotSatisfiable(size)
    return start, min(end, size - 1)


def parse_accept_encoding(headers: Headers) -> dict[str, float]:
    """Map each coding in ``Accept-Encoding`` to its q-value."""
    accepted: dict[str, float] = {}
    for item in headers.get_tokens("accept-encoding"):
        name, *params = (part.strip() for part in item.split(";"))
        quality = 1.0
        for param in params:
            key, _, raw = param.partition("=")
            if key.strip().lower() == "q":
                try:
                    quality = float(raw)
                except ValueError:
                    quality = 0.0
        accepted[name.lower()] = quality
    return accepted
