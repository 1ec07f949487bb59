"""``perch routes`` — list registered routes.

Prints NAME, METHOD, PATH and HANDLER columns. Handler objects show their
``repr()``, so static routes read ``static('index.html')``.
"""

import argparse
import sys

from perch.cli._resolve import resolve_app
from perch.errors import ConfigurationError
from perch.routing.route import Route

_HEADER = ("NAME", "METHOD", "PATH", "HANDLER")


def format_routes(routes: list[Route]) -> list[str]:
    """Format *routes* as aligned table lines, header first."""
    rows = [
        (route.name or "", ", ".join(sorted(route.methods)), route.path, route.label)
        for route in routes
    ]
    widths = [max(len(row[i]) for row in [_HEADER, *rows]) for i in range(3)]
    fmt = f"{{:>{widths[0]}}}  {{:<{widths[1]}}}  {{:<{widths[2]}}}  {{}}"
    return [fmt.format(*row).rstrip() for row in [_HEADER, *rows]]


def run_routes(args: argparse.Namespace) -> None:
    """List registered routes for a perch app."""
    try:
        app = resolve_app(args.app)
        routes = app.routes
    except (ModuleNotFoundError, AttributeError, TypeError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if not routes:
        print("No routes registered.")
        return

    for line in format_routes(routes):
        print(line)
