"""
Tests for the job state machine constants and helpers.
"""

import pytest

from autonews.orchestrator.state import (
    COMPLETED,
    FAILED,
    PENDING,
    PROGRESS_VALUES,
    RUNNING,
    STAGE_PROGRESS,
    can_transition,
    is_terminal,
    stage_for_progress,
)


class TestTransitions:
    @pytest.mark.parametrize(
        "current,new",
        [
            (PENDING, RUNNING),
            (PENDING, FAILED),
            (RUNNING, RUNNING),
            (RUNNING, COMPLETED),
            (RUNNING, FAILED),
        ],
    )
    def test_allowed(self, current, new):
        assert can_transition(current, new)

    @pytest.mark.parametrize(
        "current,new",
        [
            (PENDING, COMPLETED),
            (RUNNING, PENDING),
            (COMPLETED, FAILED),
            (COMPLETED, RUNNING),
            (FAILED, PENDING),
            (FAILED, RUNNING),
        ],
    )
    def test_rejected(self, current, new):
        assert not can_transition(current, new)

    def test_unknown_status_never_transitions(self):
        assert not can_transition("stitching", RUNNING)

    def test_terminal_states(self):
        assert is_terminal(COMPLETED)
        assert is_terminal(FAILED)
        assert not is_terminal(PENDING)
        assert not is_terminal(RUNNING)


class TestProgress:
    def test_stage_progress_is_increasing(self):
        values = list(STAGE_PROGRESS.values())
        assert values == sorted(values)
        assert values == [10, 25, 50, 75, 100]

    def test_progress_values_include_zero(self):
        assert PROGRESS_VALUES == {0, 10, 25, 50, 75, 100}

    @pytest.mark.parametrize(
        "progress,stage",
        [(0, "pending"), (10, "fetch"), (25, "summarize"), (60, "synthesize"), (75, "render"), (100, "finalize")],
    )
    def test_stage_for_progress(self, progress, stage):
        assert stage_for_progress(progress) == stage
