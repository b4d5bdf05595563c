"""Evidence captured for one route, as consumed by the proposers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from autosmoke.errors import EvidenceError


class Evidence(BaseModel):
    """A single browser snapshot. Read-only input to a proposer."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    dom_snapshot: str = Field(alias="domSnapshot")
    console_errors: list[str] = Field(default_factory=list, alias="consoleErrors")
    network_errors: list[str] = Field(default_factory=list, alias="networkErrors")
    page_errors: list[str] = Field(default_factory=list, alias="pageErrors")
    screenshot_path: str = Field(default="", alias="screenshotPath")
    diff_summary: Optional[str] = Field(default=None, alias="diffSummary")
    route: str
    url: str = ""
    timestamp: str = ""

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


def load_evidence(path: str | Path) -> Evidence:
    """Read and validate an evidence JSON file."""
    path = Path(path)
    if not path.is_file():
        raise EvidenceError(f"Evidence file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise EvidenceError(f"Could not read evidence file {path}: {e}") from e
    try:
        return Evidence.model_validate(data)
    except ValidationError as e:
        raise EvidenceError(f"Malformed evidence in {path}: {e}") from e
