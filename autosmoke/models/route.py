"""Route records produced by route discovery."""

from __future__ import annotations

from pydantic import BaseModel, Field

from .config import RouteConfig


class DiscoveredRoute(BaseModel):
    path: str  # normalized, "/" for the root
    source_file: str = ""  # empty for routes declared only in .smoke.yml
    config: RouteConfig = Field(default_factory=RouteConfig)
    is_dynamic: bool = False


class SkippedRoute(BaseModel):
    path: str
    source_file: str = ""
    reason: str = ""


class DiscoveryResult(BaseModel):
    routes: list[DiscoveredRoute] = Field(default_factory=list)
    skipped: list[SkippedRoute] = Field(default_factory=list)
