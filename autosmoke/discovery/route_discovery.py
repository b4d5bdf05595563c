"""Route discovery — infers testable routes from file-system routing conventions.

Two conventions are recognised under the project root:

* ``app/``: nested directory routing. Every ``page.<ext>`` file is a route
  whose path is its directory, with ``(group)`` segments removed.
* ``pages/``: flat file routing. Every file is a route whose path is the
  file path without its extension, with a trailing ``index`` collapsed.
  ``_app``, ``_document`` and the ``api/`` subtree are not pages.

Routes declared only in ``.smoke.yml`` are added after the file-derived
ones. Dynamic ``[param]`` segments are filled from ``sample_params``;
routes that cannot be filled are skipped.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

from autosmoke.models.config import SmokeConfig
from autosmoke.models.route import DiscoveredRoute, DiscoveryResult, SkippedRoute
from autosmoke.url_utils import normalize_route_path

logger = logging.getLogger(__name__)

ROUTE_EXTENSIONS = (".tsx", ".jsx", ".ts", ".js")

APP_ROOT = "app"
APP_LEAF_STEM = "page"
PAGES_ROOT = "pages"

# Top-level files under pages/ that are app shells, not routes
_PAGES_SPECIAL_STEMS = ("_app", "_document")
_PAGES_API_DIR = "api"

_IGNORED_DIRS = ("node_modules",)


def _is_route_group(segment: str) -> bool:
    return segment.startswith("(") and segment.endswith(")")


def app_file_to_route(relative: PurePosixPath) -> str:
    """Route path for a ``page.<ext>`` file, given relative to ``app/``."""
    segments = [s for s in relative.parent.parts if not _is_route_group(s)]
    return normalize_route_path("/".join(segments))


def pages_file_to_route(relative: PurePosixPath) -> str:
    """Route path for a file given relative to ``pages/``."""
    segments = list(relative.with_suffix("").parts)
    if segments and segments[-1] == "index":
        segments.pop()
    return normalize_route_path("/".join(segments))


def is_app_page(relative: PurePosixPath) -> bool:
    return relative.stem == APP_LEAF_STEM and relative.suffix in ROUTE_EXTENSIONS


def is_pages_route(relative: PurePosixPath) -> bool:
    if relative.suffix not in ROUTE_EXTENSIONS:
        return False
    if relative.parts and relative.parts[0] == _PAGES_API_DIR and len(relative.parts) > 1:
        return False
    if len(relative.parts) == 1 and relative.stem in _PAGES_SPECIAL_STEMS:
        return False
    return True


def substitute_params(path: str, params: dict[str, str]) -> str:
    """Replace each ``[name]`` placeholder with its sample value."""
    for name, value in params.items():
        path = path.replace(f"[{name}]", value)
    return path


class RouteDiscovery:
    """Discovers the routes of a project.

    The project's ``.smoke.yml`` is loaded once when the instance is created
    (unless a config is passed in) and is read-only afterwards, so one
    instance can be shared between concurrent consumers.
    """

    def __init__(self, project_root: str | Path = ".", config: SmokeConfig | None = None):
        self.project_root = Path(project_root)
        self.config = config if config is not None else SmokeConfig.load_for_project(self.project_root)

    def get_config(self) -> SmokeConfig:
        return self.config

    def discover_routes(self) -> list[DiscoveredRoute]:
        """Return the testable routes in discovery order."""
        return self.discover().routes

    def discover(self) -> DiscoveryResult:
        """Discover routes and report the dynamic routes that were dropped."""
        by_path: dict[str, DiscoveredRoute] = {}

        for relative, file_path in self._list_files(APP_ROOT):
            if is_app_page(relative):
                self._add_file_route(by_path, app_file_to_route(relative), file_path)

        for relative, file_path in self._list_files(PAGES_ROOT):
            if is_pages_route(relative):
                self._add_file_route(by_path, pages_file_to_route(relative), file_path)

        file_route_count = len(by_path)
        for declared in self.config.routes:
            if declared not in by_path:
                by_path[declared] = DiscoveredRoute(
                    path=declared,
                    source_file="",
                    config=self.config.resolve_route_config(declared),
                    is_dynamic="[" in declared,
                )
        logger.debug("Found %d file routes and %d config-only routes",
                     file_route_count, len(by_path) - file_route_count)

        return self._resolve_dynamic(list(by_path.values()))

    def _list_files(self, routing_root: str) -> list[tuple[PurePosixPath, Path]]:
        """Files under a routing root, sorted by their relative POSIX path."""
        root = self.project_root / routing_root
        if not root.is_dir():
            return []
        found = []
        for file_path in root.rglob("*"):
            if not file_path.is_file():
                continue
            relative = PurePosixPath(file_path.relative_to(root).as_posix())
            if any(part in _IGNORED_DIRS for part in relative.parts):
                continue
            found.append((relative, file_path))
        found.sort(key=lambda item: str(item[0]))
        return found

    def _add_file_route(self, by_path: dict[str, DiscoveredRoute], path: str, file_path: Path) -> None:
        previous = by_path.get(path)
        if previous is not None:
            # Later file wins; the route keeps its first position
            logger.warning("Route %s is produced by both %s and %s; using the latter",
                           path, previous.source_file, file_path)
        by_path[path] = DiscoveredRoute(
            path=path,
            source_file=str(file_path),
            config=self.config.resolve_route_config(path),
            is_dynamic="[" in path,
        )

    def _resolve_dynamic(self, routes: list[DiscoveredRoute]) -> DiscoveryResult:
        result = DiscoveryResult()
        for route in routes:
            if not route.is_dynamic:
                result.routes.append(route)
                continue

            params = route.config.sample_params
            if not params:
                logger.warning("Skipping dynamic route %s - no sample_params provided", route.path)
                result.skipped.append(SkippedRoute(
                    path=route.path, source_file=route.source_file,
                    reason="no sample_params provided",
                ))
                continue

            resolved = substitute_params(route.path, params)
            if "[" in resolved:
                logger.warning("Skipping dynamic route %s - sample_params leave %s unresolved",
                               route.path, resolved)
                result.skipped.append(SkippedRoute(
                    path=route.path, source_file=route.source_file,
                    reason=f"unresolved segment in {resolved}",
                ))
                continue

            result.routes.append(route.model_copy(update={"path": resolved, "is_dynamic": False}))

        if result.skipped:
            logger.info("Skipped %d dynamic route(s) without sample_params", len(result.skipped))
        return result
