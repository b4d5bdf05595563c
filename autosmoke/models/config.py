"""Configuration models for the smoke runner."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from autosmoke.errors import ConfigError
from autosmoke.url_utils import normalize_route_path

CONFIG_FILENAME = ".smoke.yml"

# Used when a route does not say which elements must exist
DEFAULT_MUST_EXIST = ["main"]


class TypeInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    selector: str
    text: str


class DemoStep(BaseModel):
    """One entry of a route's demo flow.

    A step may combine several parts; they run as click, type, expect_text.
    """

    model_config = ConfigDict(frozen=True)

    click: Optional[str] = None
    type: Optional[TypeInput] = None
    expect_text: Optional[str] = None


class RouteConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    must_exist: Optional[list[str]] = None
    must_not_error: bool = True
    demo_flow: list[DemoStep] = Field(default_factory=list)
    sample_params: Optional[dict[str, str]] = None

    @field_validator("sample_params", mode="before")
    @classmethod
    def stringify_params(cls, v: Any) -> Any:
        # YAML turns `id: 42` into an int; substitution is textual
        if isinstance(v, dict):
            return {str(k): str(val) for k, val in v.items()}
        return v

    @property
    def selectors_to_check(self) -> list[str]:
        if self.must_exist is None:
            return list(DEFAULT_MUST_EXIST)
        return list(self.must_exist)

    def overrides(self) -> dict[str, Any]:
        """Keys that were explicitly given in the config file."""
        return self.model_dump(exclude_unset=True)


class AuthSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: Literal["none", "cookie", "magic_link"] = "none"
    cookie: Optional[str] = None
    magic_link_path: Optional[str] = None


class AxeSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    ignore: list[str] = Field(default_factory=list)


class VisualSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    threshold: float = 0.2


class SmokeConfig(BaseModel):
    """Contents of a project's ``.smoke.yml``."""

    model_config = ConfigDict(frozen=True)

    defaults: RouteConfig = Field(default_factory=RouteConfig)
    routes: dict[str, RouteConfig] = Field(default_factory=dict)
    auth: Optional[AuthSection] = None
    axe: AxeSection = Field(default_factory=AxeSection)
    visual: VisualSection = Field(default_factory=VisualSection)

    @field_validator("defaults", "axe", "visual", mode="before")
    @classmethod
    def empty_sections(cls, v: Any) -> Any:
        # A bare `defaults:` key parses as None
        return {} if v is None else v

    @field_validator("routes", mode="before")
    @classmethod
    def empty_route_bodies(cls, v: Any) -> Any:
        # `/about:` with nothing under it parses as None; keys are matched
        # against discovered paths, so they are normalized the same way
        if v is None:
            return {}
        if isinstance(v, dict):
            return {
                normalize_route_path(str(k)): ({} if body is None else body)
                for k, body in v.items()
            }
        return v

    def resolve_route_config(self, path: str) -> RouteConfig:
        """Shallow-merge the defaults with the route's own overrides."""
        route = self.routes.get(normalize_route_path(path))
        merged = dict(self.defaults.overrides())
        if route is not None:
            merged.update(route.overrides())
        return RouteConfig.model_validate(merged)

    @classmethod
    def load(cls, path: str | Path) -> "SmokeConfig":
        """Load config from a YAML file. A missing file is an empty config."""
        path = Path(path)
        if not path.exists():
            return cls()
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML: {e}", path) from e
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError("top level must be a mapping", path)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(str(e), path) from e

    @classmethod
    def load_for_project(cls, project_root: str | Path) -> "SmokeConfig":
        return cls.load(Path(project_root) / CONFIG_FILENAME)


AuthMode = Literal["none", "cookie", "magic_link", "basic", "oauth_token"]


def _env_int(env: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw, 10)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


class RunnerSettings(BaseModel):
    """Process-level settings, read once from the environment."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "http://localhost:3000"
    concurrency: int = 4
    route_limit: Optional[int] = None
    auth_mode: AuthMode = "none"
    auth_cookie: Optional[str] = None
    magic_link_path: Optional[str] = None
    basic_auth_username: str = ""
    basic_auth_password: str = ""
    oauth_token: Optional[str] = None
    session_file: Optional[str] = None
    visual_mode: bool = False
    slack_webhook: Optional[str] = None
    dev_start: Optional[str] = None
    project_root: str = "."
    timeout: int = 30000  # milliseconds
    retries: int = 2

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "RunnerSettings":
        env = os.environ if env is None else env
        try:
            return cls(
                base_url=env.get("BASE_URL") or "http://localhost:3000",
                concurrency=_env_int(env, "SMOKE_CONCURRENCY", 4),
                route_limit=_env_int(env, "ROUTE_LIMIT", None),
                auth_mode=env.get("AUTH_MODE") or "none",
                auth_cookie=env.get("AUTH_COOKIE"),
                magic_link_path=env.get("MAGIC_LINK_PATH"),
                basic_auth_username=env.get("BASIC_AUTH_USERNAME", ""),
                basic_auth_password=env.get("BASIC_AUTH_PASSWORD", ""),
                oauth_token=env.get("OAUTH_TOKEN"),
                session_file=env.get("SESSION_FILE"),
                visual_mode=env.get("VISUAL") in ("1", "true"),
                slack_webhook=env.get("SMOKE_SLACK_WEBHOOK"),
                dev_start=env.get("DEV_START"),
                project_root=env.get("PROJECT_ROOT") or os.getcwd(),
                timeout=_env_int(env, "TIMEOUT", 30000),
                retries=_env_int(env, "RETRIES", 2),
            )
        except ValidationError as e:
            raise ConfigError(str(e)) from e
