"""Tests for domain state machines."""

import pytest

from pim_core.domain import CompositeUpdateStatus
from pim_core.domain.exceptions import InvalidStateTransitionError
from pim_core.domain.state_machines import validate_composite_update_transition


class TestCompositeUpdateStatus:
    """Tests for CompositeUpdateStatus state machine."""

    def test_open_can_start_nested_saves(self) -> None:
        """OPEN can transition to NESTED_SAVES_RUNNING."""
        assert CompositeUpdateStatus.OPEN.can_transition_to(
            CompositeUpdateStatus.NESTED_SAVES_RUNNING
        )

    def test_open_can_roll_back(self) -> None:
        """OPEN can transition to ROLLED_BACK."""
        assert CompositeUpdateStatus.OPEN.can_transition_to(CompositeUpdateStatus.ROLLED_BACK)

    def test_open_cannot_commit_directly(self) -> None:
        """OPEN cannot transition directly to COMMITTED."""
        assert not CompositeUpdateStatus.OPEN.can_transition_to(CompositeUpdateStatus.COMMITTED)

    def test_running_can_commit_or_roll_back(self) -> None:
        """NESTED_SAVES_RUNNING can transition to COMMITTED or ROLLED_BACK."""
        running = CompositeUpdateStatus.NESTED_SAVES_RUNNING
        assert set(running.allowed_transitions()) == {
            CompositeUpdateStatus.COMMITTED,
            CompositeUpdateStatus.ROLLED_BACK,
        }

    def test_committed_is_terminal(self) -> None:
        """COMMITTED is a terminal state."""
        assert CompositeUpdateStatus.COMMITTED.is_terminal()
        assert CompositeUpdateStatus.COMMITTED.allowed_transitions() == []

    def test_rolled_back_is_terminal(self) -> None:
        """ROLLED_BACK is a terminal state."""
        assert CompositeUpdateStatus.ROLLED_BACK.is_terminal()

    def test_running_is_not_terminal(self) -> None:
        """NESTED_SAVES_RUNNING is not a terminal state."""
        assert not CompositeUpdateStatus.NESTED_SAVES_RUNNING.is_terminal()


class TestTransitionValidation:
    """Tests for the transition validation helper."""

    def test_valid_transition_passes(self) -> None:
        """Valid transition does not raise."""
        validate_composite_update_transition(
            "upd-1",
            CompositeUpdateStatus.NESTED_SAVES_RUNNING,
            CompositeUpdateStatus.COMMITTED,
        )

    def test_invalid_transition_raises(self) -> None:
        """Invalid transition raises with the allowed targets."""
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            validate_composite_update_transition(
                "upd-1",
                CompositeUpdateStatus.COMMITTED,
                CompositeUpdateStatus.ROLLED_BACK,
            )

        assert exc_info.value.details["entity_type"] == "CompositeUpdate"
        assert exc_info.value.details["allowed_transitions"] == []
