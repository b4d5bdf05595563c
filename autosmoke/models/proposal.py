"""Proposal data structures produced by the proposers."""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _Step(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str = ""


class ClickStep(_Step):
    action: Literal["click"] = "click"
    selector: str


class TypeStep(_Step):
    action: Literal["type"] = "type"
    selector: str
    text: str


class ExpectTextStep(_Step):
    action: Literal["expect_text"] = "expect_text"
    text: str


class ExpectVisibleStep(_Step):
    action: Literal["expect_visible"] = "expect_visible"
    selector: str


class WaitStep(_Step):
    action: Literal["wait"] = "wait"
    timeout: int  # milliseconds


class ScrollStep(_Step):
    action: Literal["scroll"] = "scroll"
    selector: Optional[str] = None


ProposedStep = Annotated[
    Union[ClickStep, TypeStep, ExpectTextStep, ExpectVisibleStep, WaitStep, ScrollStep],
    Field(discriminator="action"),
]


class Proposal(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    route: str
    rationale: list[str] = Field(default_factory=list)
    steps: list[ProposedStep] = Field(default_factory=list)
    risk_flags: list[str] = Field(default_factory=list, alias="riskFlags")
    confidence: float = 0.0

    def to_json_dict(self) -> dict:
        """JSON shape shared with the evidence tooling (camelCase keys)."""
        return self.model_dump(by_alias=True, exclude_none=True)
