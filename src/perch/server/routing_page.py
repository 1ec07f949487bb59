"""Debug routing-error page.

Rendered instead of the plain 404 body when ``AppConfig.debug`` is on and
no route matched. Lists every route with its name, methods, path, and
handler label, so a developer can see at a glance which paths exist
(``static('index.html')`` routes included).

Uses f-strings and ``html.escape`` only, so a broken handler or template
cannot prevent the page from rendering.
"""

import html

from perch.routing.route import Route

_STYLE = """
body { font-family: ui-monospace, monospace; background: #1a1b26; color: #c0caf5; padding: 2em; }
h1 { color: #f7768e; font-size: 1.4em; }
p.detail { color: #a9b1d6; }
table { border-collapse: collapse; margin-top: 1em; }
th, td { text-align: left; padding: 0.3em 1.2em 0.3em 0; }
th { color: #7aa2f7; border-bottom: 1px solid #3b4261; }
td.name { color: #9ece6a; }
td.handler { color: #e0af68; }
"""


def _esc(text: str) -> str:
    return html.escape(text, quote=True)


def render_routes_table(routes: list[Route]) -> str:
    """Render *routes* as an HTML table (NAME, METHOD, PATH, HANDLER)."""
    if not routes:
        return "<p>No routes registered.</p>"
    rows = "".join(
        "<tr>"
        f'<td class="name">{_esc(route.name or "")}</td>'
        f"<td>{_esc(', '.join(sorted(route.methods)))}</td>"
        f"<td>{_esc(route.path)}</td>"
        f'<td class="handler">{_esc(route.label)}</td>'
        "</tr>"
        for route in routes
    )
    return (
        "<table><thead><tr><th>Name</th><th>Method</th><th>Path</th><th>Handler</th>"
        f"</tr></thead><tbody>{rows}</tbody></table>"
    )


def render_routing_error(method: str, path: str, detail: str, routes: list[Route]) -> str:
    """Full HTML page for an unmatched request in debug mode."""
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>Routing Error</title><style>{_STYLE}</style></head><body>"
        f"<h1>Routing Error: no route matches {_esc(method)} {_esc(path)}</h1>"
        f'<p class="detail">{_esc(detail)}</p>'
        f"<h2>Routes</h2>{render_routes_table(routes)}"
        "</body></html>"
    )
