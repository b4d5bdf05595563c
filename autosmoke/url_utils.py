"""Shared URL utilities — build route URLs and derive stable file names."""

from __future__ import annotations

import hashlib
from urllib.parse import urlparse


def normalize_route_path(raw: str) -> str:
    """Collapse a raw path into ``/a/b`` form, ``/`` for the root."""
    segments = [s for s in raw.split("/") if s]
    if not segments:
        return "/"
    return "/" + "/".join(segments)


def route_url(base_url: str, route_path: str) -> str:
    """Join the app's base URL and a route path."""
    return base_url.rstrip("/") + route_path


def route_file_stem(route_path: str) -> str:
    """File-name-safe form of a route path (``/a/b`` → ``_a_b``).

    ``/a_b`` would map to the same stem as ``/a/b``, so paths that already
    contain an underscore get a short hash of the path appended.
    """
    stem = route_path.replace("/", "_")
    if "_" in route_path:
        digest = hashlib.sha1(route_path.encode("utf-8")).hexdigest()[:8]
        stem = f"{stem}-{digest}"
    return stem


def base_hostname(base_url: str) -> str:
    return urlparse(base_url).hostname or ""


def is_https(base_url: str) -> bool:
    return urlparse(base_url).scheme == "https"
