"""Candidate URL generation for image downloads.

CDN thumbnails are often served at a small size token (``_200x``) and the
same asset exists at larger sizes. Given one discovered image URL, build an
ordered list of alternative URLs to try, most preferred first.
"""

import re
from urllib.parse import urlsplit, urlunsplit

# Vendor CDN namespace. Query strings on these hosts carry sizing/signing
# parameters and must be preserved.
CDN_HOST_PATTERN = re.compile(r"ltwebstatic|shein|sheinsz|sheincdn", re.IGNORECASE)

# Thumbnail size tokens that can be rewritten to a larger size
SIZE_TOKENS = ("_200x", "_300x", "_400x")

_UPGRADED_PATTERN = re.compile(r"_(750x|1000x)\.")


def is_cdn_host(host: str | None) -> bool:
    """Check if a hostname belongs to the known vendor CDN."""
    return bool(host and CDN_HOST_PATTERN.search(host))


def normalize_url(raw_url: str) -> str:
    """
    Normalize a discovered image URL.

    Scheme-relative URLs become https. The query string is kept for CDN hosts
    and dropped for everything else. Unparseable input is returned as-is.
    """
    url = raw_url.strip()
    if url.startswith("//"):
        url = "https:" + url

    try:
        parts = urlsplit(url)
    except ValueError:
        return url

    if not parts.scheme or not parts.netloc:
        return url

    if is_cdn_host(parts.hostname):
        return url

    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def upgrade_size(path: str, size: str) -> str:
    """
    Rewrite a path to request a larger image size.

    Replaces the first known thumbnail token with ``_<size>``. Paths that
    carry no token get ``_<size>`` inserted before the extension, unless
    they are already at 750x/1000x. Paths without an extension are returned
    unchanged.

    Args:
        path: URL path (or full URL) to rewrite
        size: Size token without the leading underscore, e.g. "750x"

    Returns:
        Rewritten path
    """
    for token in SIZE_TOKENS:
        if token in path:
            return path.replace(token, f"_{size}", 1)

    if _UPGRADED_PATTERN.search(path):
        return path

    stem, dot, ext = path.rpartition(".")
    if not dot or not stem or "/" in ext:
        return path

    return f"{stem}_{size}.{ext}"


def build_candidates(raw_url: str) -> tuple[str, ...]:
    """
    Build the ordered, deduplicated candidate list for one image URL.

    Order: normalized URL, 1000x and 750x variants (query kept), then the
    query-stripped URL and its variants when a query exists, and finally an
    https variant of an http URL.
    """
    url = normalize_url(raw_url)
    candidates: dict[str, None] = {}

    def push(candidate: str) -> None:
        if candidate:
            candidates.setdefault(candidate, None)

    push(url)

    try:
        parts = urlsplit(url)
    except ValueError:
        return tuple(candidates)

    if not parts.scheme or not parts.netloc:
        return tuple(candidates)

    origin = f"{parts.scheme}://{parts.netloc}"
    query = f"?{parts.query}" if parts.query else ""

    # Higher resolutions first
    push(origin + upgrade_size(parts.path, "1000x") + query)
    push(origin + upgrade_size(parts.path, "750x") + query)

    if parts.query:
        push(origin + parts.path)
        push(origin + upgrade_size(parts.path, "1000x"))
        push(origin + upgrade_size(parts.path, "750x"))

    if parts.scheme == "http":
        push(f"https://{parts.netloc}{parts.path}{query}")

    return tuple(candidates)
