"""Proposers — turn captured evidence into suggested follow-up test steps."""

from __future__ import annotations

import logging
from functools import reduce
from typing import Optional, Protocol

from autosmoke.models.evidence import Evidence
from autosmoke.models.proposal import Proposal

from .detectors import (
    DETECTORS,
    FALLBACK_RATIONALE,
    Accumulator,
    diff_rationale,
    fallback_step,
)

logger = logging.getLogger(__name__)

BASE_CONFIDENCE = 0.1
DIFF_CONFIDENCE_BONUS = 0.2
MAX_CONFIDENCE = 1.0


class Proposer(Protocol):
    def propose(self, evidence: Evidence) -> Proposal: ...


class HeuristicProposer:
    """Rule-based proposer built on a fixed battery of detectors.

    Deterministic and free of side effects: the same evidence always yields
    the same proposal. Confidence is capped at 1.0 but not floored, so a page
    with network errors and little else scores below zero.
    """

    def propose(self, evidence: Evidence) -> Proposal:
        dom = evidence.dom_snapshot.lower()

        def _run(acc: Accumulator, detector) -> Accumulator:
            result = detector(evidence, dom)
            if result.fired:
                logger.debug("%s: %s fired (delta %+.1f)", evidence.route, detector.__name__, result.delta)
            return acc.apply(result)

        acc = reduce(_run, DETECTORS, Accumulator(confidence=BASE_CONFIDENCE))

        if not acc.steps:
            acc.rationale.append(FALLBACK_RATIONALE)
            acc.steps.append(fallback_step())
            acc.confidence = BASE_CONFIDENCE

        if evidence.diff_summary:
            acc.rationale.append(diff_rationale(evidence.diff_summary))
            acc.confidence += DIFF_CONFIDENCE_BONUS

        return Proposal(
            route=evidence.route,
            rationale=acc.rationale,
            steps=acc.steps,
            risk_flags=acc.risk_flags,
            confidence=min(acc.confidence, MAX_CONFIDENCE),
        )


DefaultProposer = HeuristicProposer


class ModelProposer:
    """Slot for a model-backed proposer. Delegates to the heuristic engine."""

    def __init__(self, model_provider: Optional[str] = None):
        self.model_provider = model_provider
        self._fallback = HeuristicProposer()

    def propose(self, evidence: Evidence) -> Proposal:
        logger.warning("Model proposer (%s) not implemented yet, using heuristic proposer",
                       self.model_provider or "no provider")
        return self._fallback.propose(evidence)


PROPOSERS = ("heuristic", "model")


def get_proposer(name: str = "heuristic", model_provider: Optional[str] = None) -> Proposer:
    if name == "heuristic":
        return HeuristicProposer()
    if name == "model":
        return ModelProposer(model_provider)
    raise ValueError(f"Unknown proposer: {name}")
