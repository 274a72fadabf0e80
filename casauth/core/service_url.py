from typing import Optional
from urllib.parse import unquote_plus, urljoin, urlsplit, urlunsplit

TICKET_PARAM = "ticket"


def strip_ticket(url: str) -> str:
    """
    Remove every `ticket` query parameter from `url`.
    Other query segments are kept as they are, in order; an empty query
    leaves no trailing '?'.
    """
    parts = urlsplit(url)
    if not parts.query:
        return urlunsplit(parts)

    kept = [
        segment for segment in parts.query.split("&")
        if segment and unquote_plus(segment.split("=", 1)[0]) != TICKET_PARAM
    ]
    return urlunsplit(parts._replace(query="&".join(kept)))


def resolve_service_url(server_base_url: Optional[str], path: str) -> str:
    """
    Build the canonical service URL: `path` resolved against the server base,
    without the ticket that brought the user agent back.
    """
    resolved = urljoin(server_base_url, path) if server_base_url else path
    return strip_ticket(resolved)


def request_path(request) -> str:
    """Path plus query string of a Starlette request, as the client sent it."""
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    return path
