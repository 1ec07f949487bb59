"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, port=3000, public_dir="dist")
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Reload (development mode — requires debug=True)
    reload_include: tuple[str, ...] = ()  # Extra extensions to watch (e.g. ".html", ".css")
    reload_dirs: tuple[str, ...] = ()  # Extra directories to watch alongside cwd

    # Production
    workers: int = 0  # 0 = auto-detect from CPU count
    log_level: str = "info"

    # Public assets: read once, when the app's file handler is built
    public_dir: str | Path | None = "public"
    public_url: str | None = None  # Mount the whole directory at this prefix
    static_cache_control: str | None = "public, max-age=3600"
    static_index: str = "index.html"
    static_precompressed: tuple[str, ...] = ("br", "gzip")
