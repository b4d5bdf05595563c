"""Tests for the heuristic proposer: detector order, fallback and scoring."""

import json
import logging

import pytest

from autosmoke.models.proposal import (
    ClickStep,
    ExpectVisibleStep,
    TypeStep,
    WaitStep,
)
from autosmoke.proposer.detectors import (
    CREATE_BUTTON_SELECTOR,
    FALLBACK_RATIONALE,
    MAIN_CONTENT_SELECTOR,
    NEXT_PAGE_SELECTOR,
    SAVE_BUTTON_SELECTOR,
)
from autosmoke.proposer.proposer import (
    DefaultProposer,
    HeuristicProposer,
    ModelProposer,
    get_proposer,
)

CONSOLE_LINE = "Console errors detected, suggesting error handling verification"
EMPTY_TABLE_LINE = "Empty table detected, checking for empty state"
DATA_TABLE_LINE = "Table with data detected, checking pagination"
CREATE_LINE = "Create/New button detected, testing creation flow"
TEST_IDS_LINE = "Test IDs found, using stable selectors"
NO_TEST_IDS_LINE = "No test IDs found, using less stable selectors"
LOADING_LINE = "Loading states detected, adding wait steps"
NETWORK_LINE = "Network errors detected in evidence"


@pytest.fixture
def proposer():
    return HeuristicProposer()


class TestEndToEnd:
    def test_console_errors_and_empty_table(self, proposer, make_evidence):
        evidence = make_evidence(
            dom="<html><body><table><tbody></tbody></table></body></html>",
            console_errors=["TypeError: x"],
        )
        proposal = proposer.propose(evidence)

        assert proposal.route == "/dashboard"
        assert proposal.rationale == [CONSOLE_LINE, EMPTY_TABLE_LINE, NO_TEST_IDS_LINE]
        assert [s.action for s in proposal.steps] == ["expect_text", "expect_text"]
        assert proposal.steps[0].text == "error"
        assert proposal.steps[1].text == "No data"
        assert proposal.risk_flags == ["console_errors_present", "no_test_ids"]
        assert proposal.confidence == pytest.approx(0.6)


class TestTableDetector:
    def test_data_rows_with_pagination(self, proposer, make_evidence):
        dom = (
            "<table><thead><tr><th>Name</th></tr></thead>"
            "<tbody><tr><td>Ada</td></tr></tbody></table>"
            '<nav class="pagination"></nav>'
        )
        proposal = proposer.propose(make_evidence(dom=dom))

        assert proposal.rationale == [DATA_TABLE_LINE, NO_TEST_IDS_LINE]
        assert proposal.steps == [ClickStep(selector=NEXT_PAGE_SELECTOR, description="Test pagination next button")]
        assert proposal.confidence == pytest.approx(0.5)

    def test_data_rows_without_pagination_falls_back(self, proposer, make_evidence):
        dom = "<table><tbody><tr><td>a</td></tr><tr><td>b</td></tr></tbody></table>"
        proposal = proposer.propose(make_evidence(dom=dom))

        assert proposal.rationale == [DATA_TABLE_LINE, NO_TEST_IDS_LINE, FALLBACK_RATIONALE]
        assert len(proposal.steps) == 1
        assert proposal.confidence == 0.1

    def test_table_without_tbody_ignored(self, proposer, make_evidence):
        proposal = proposer.propose(make_evidence(dom="<table><tr><td>x</td></tr></table>"))
        assert DATA_TABLE_LINE not in proposal.rationale
        assert EMPTY_TABLE_LINE not in proposal.rationale


class TestCreateFlowDetector:
    def test_full_creation_flow(self, proposer, make_evidence):
        dom = (
            '<div data-testid="list"><button class="primary">Create item</button>'
            '<form><input type="text" name="title" required></form>'
            '<button type="submit">Save</button></div>'
        )
        proposal = proposer.propose(make_evidence(dom=dom))

        assert proposal.rationale == [
            CREATE_LINE,
            "Form with 1 required fields detected",
            TEST_IDS_LINE,
        ]
        assert [s.action for s in proposal.steps] == ["click", "type", "click", "expect_text"]
        assert proposal.steps[0].selector == CREATE_BUTTON_SELECTOR
        assert isinstance(proposal.steps[1], TypeStep)
        assert proposal.steps[1].text == "Test Item"
        assert proposal.steps[2].selector == SAVE_BUTTON_SELECTOR
        assert proposal.steps[3].text == "created|saved|success"
        assert proposal.risk_flags == ["required_fields_present"]
        # 0.1 + 0.5 + 0.2 + 0.3 is capped
        assert proposal.confidence == 1.0

    def test_create_button_alone(self, proposer, make_evidence):
        proposal = proposer.propose(make_evidence(dom="<div><button>New</button></div>"))

        assert proposal.rationale == [CREATE_LINE, NO_TEST_IDS_LINE]
        assert proposal.steps == [ClickStep(selector=CREATE_BUTTON_SELECTOR, description="Click create/new button")]
        assert proposal.confidence == pytest.approx(0.6)

    def test_dom_is_case_folded(self, proposer, make_evidence):
        proposal = proposer.propose(make_evidence(dom="<BUTTON CLASS='X'>ADD USER</BUTTON>"))
        assert proposal.rationale[0] == CREATE_LINE


class TestRequiredFieldsDetector:
    def test_counts_required_markers(self, proposer, make_evidence):
        dom = "<form><input name='a' required><input name='b' required><select required></select></form>"
        proposal = proposer.propose(make_evidence(dom=dom))
        assert proposal.rationale[0] == "Form with 3 required fields detected"
        assert "required_fields_present" in proposal.risk_flags

    def test_required_without_form_ignored(self, proposer, make_evidence):
        proposal = proposer.propose(make_evidence(dom="<input name='a' required>"))
        assert "required_fields_present" not in proposal.risk_flags


class TestLoadingDetector:
    def test_wait_step_is_first_even_after_other_steps(self, proposer, make_evidence):
        dom = '<div class="spinner"></div><button>Add user</button>'
        proposal = proposer.propose(make_evidence(dom=dom))

        assert isinstance(proposal.steps[0], WaitStep)
        assert proposal.steps[0].timeout == 2000
        assert isinstance(proposal.steps[1], ClickStep)
        assert proposal.rationale == [CREATE_LINE, NO_TEST_IDS_LINE, LOADING_LINE]
        assert proposal.confidence == pytest.approx(0.7)

    def test_wait_step_precedes_console_error_step(self, proposer, make_evidence):
        proposal = proposer.propose(make_evidence(dom="<p>Loading...</p>", console_errors=["boom"]))
        assert [s.action for s in proposal.steps] == ["wait", "expect_text"]


class TestFallback:
    def test_resets_confidence_when_no_steps(self, proposer, make_evidence):
        """Deltas from rationale-only detectors are discarded by the fallback."""
        dom = '<form data-testid="signup"><input name="email" required></form>'
        proposal = proposer.propose(make_evidence(dom=dom))

        assert proposal.rationale == [
            "Form with 1 required fields detected",
            TEST_IDS_LINE,
            FALLBACK_RATIONALE,
        ]
        assert proposal.steps == [
            ExpectVisibleStep(selector=MAIN_CONTENT_SELECTOR, description="Verify main content is visible")
        ]
        assert proposal.confidence == 0.1
        assert proposal.risk_flags == ["required_fields_present"]

    def test_network_errors_only(self, proposer, make_evidence):
        proposal = proposer.propose(make_evidence(network_errors=["GET /api/items -> 500"]))

        assert proposal.rationale == [NO_TEST_IDS_LINE, NETWORK_LINE, FALLBACK_RATIONALE]
        assert proposal.risk_flags == ["no_test_ids", "network_errors_present"]
        assert len(proposal.steps) == 1
        assert proposal.confidence == 0.1


class TestConfidence:
    def test_network_errors_lower_confidence_without_floor(self, proposer, make_evidence):
        proposal = proposer.propose(make_evidence(
            dom="<div class='loading'></div>", network_errors=["GET /x -> 502"],
        ))
        assert proposal.steps[0].action == "wait"
        assert proposal.confidence == pytest.approx(0.0)

    def test_never_above_one(self, proposer, make_evidence):
        dom = (
            '<div class="loading" data-testid="x"><table><tbody></tbody></table>'
            '<button>Create</button><form><input type="text" required></form></div>'
        )
        proposal = proposer.propose(make_evidence(dom=dom, console_errors=["e"], diff_summary="+1 -1"))
        assert proposal.confidence == 1.0


class TestDiffSummary:
    def test_diff_preview_truncated(self, proposer, make_evidence):
        diff = "x" * 250
        proposal = proposer.propose(make_evidence(diff_summary=diff))

        assert proposal.rationale[-1] == "Git diff detected: " + "x" * 100 + "..."
        # fallback (0.1) then the diff bonus
        assert proposal.confidence == pytest.approx(0.3)

    def test_empty_diff_ignored(self, proposer, make_evidence):
        proposal = proposer.propose(make_evidence(diff_summary=""))
        assert not any(line.startswith("Git diff") for line in proposal.rationale)


class TestDeterminism:
    def test_identical_evidence_identical_output(self, proposer, make_evidence):
        evidence = make_evidence(
            dom='<div class="spinner"></div><button>Create</button><input type="text">',
            console_errors=["TypeError"],
            network_errors=["GET /a -> 404"],
            diff_summary="src/app/page.tsx | 4 ++--",
        )
        first = json.dumps(proposer.propose(evidence).to_json_dict())
        second = json.dumps(HeuristicProposer().propose(evidence).to_json_dict())
        assert first == second

    def test_evidence_not_mutated(self, proposer, make_evidence):
        evidence = make_evidence(console_errors=["a"], network_errors=["b"])
        before = evidence.model_dump()
        proposer.propose(evidence)
        assert evidence.model_dump() == before


class TestProposerSelection:
    def test_default_alias(self):
        assert DefaultProposer is HeuristicProposer

    def test_get_proposer(self):
        assert isinstance(get_proposer("heuristic"), HeuristicProposer)
        assert isinstance(get_proposer("model"), ModelProposer)

    def test_unknown_proposer(self):
        with pytest.raises(ValueError):
            get_proposer("oracle")

    def test_model_proposer_delegates_with_warning(self, make_evidence, caplog):
        evidence = make_evidence()
        with caplog.at_level(logging.WARNING):
            proposal = ModelProposer("some-provider").propose(evidence)
        assert proposal == HeuristicProposer().propose(evidence)
        assert "not implemented" in caplog.text
