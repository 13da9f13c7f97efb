"""State machines for domain processes.

Deterministic state machine for the composite product update: a product
save wrapping nested attribute value edits in one atomic unit.
"""

from enum import Enum

from pim_core.domain.exceptions import InvalidStateTransitionError


class CompositeUpdateStatus(str, Enum):
    """Composite update lifecycle states.

    State diagram:
        OPEN
          │
          │ start_nested_saves
          ▼
        NESTED_SAVES_RUNNING ──────────────► ROLLED_BACK
          │                    conflicts
          │ commit
          ▼
        COMMITTED
    """

    OPEN = "open"
    NESTED_SAVES_RUNNING = "nested_saves_running"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"

    def can_transition_to(self, target: "CompositeUpdateStatus") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _COMPOSITE_UPDATE_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["CompositeUpdateStatus"]:
        """Get list of valid target states."""
        return list(_COMPOSITE_UPDATE_TRANSITIONS.get(self, set()))

    def is_terminal(self) -> bool:
        """Check if this is a terminal (final) state."""
        return len(_COMPOSITE_UPDATE_TRANSITIONS.get(self, set())) == 0


_COMPOSITE_UPDATE_TRANSITIONS: dict[CompositeUpdateStatus, set[CompositeUpdateStatus]] = {
    CompositeUpdateStatus.OPEN: {
        CompositeUpdateStatus.NESTED_SAVES_RUNNING,
        CompositeUpdateStatus.ROLLED_BACK,
    },
    CompositeUpdateStatus.NESTED_SAVES_RUNNING: {
        CompositeUpdateStatus.COMMITTED,
        CompositeUpdateStatus.ROLLED_BACK,
    },
    CompositeUpdateStatus.COMMITTED: set(),  # Terminal state
    CompositeUpdateStatus.ROLLED_BACK: set(),  # Terminal state
}


def validate_composite_update_transition(
    update_id: str,
    current_status: CompositeUpdateStatus,
    target_status: CompositeUpdateStatus,
) -> None:
    """Validate and raise if composite update transition is invalid.

    Args:
        update_id: Identifier used in the error message.
        current_status: Current status.
        target_status: Target status.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_status.can_transition_to(target_status):
        raise InvalidStateTransitionError(
            entity_type="CompositeUpdate",
            entity_id=update_id,
            current_state=current_status.value,
            target_state=target_status.value,
            allowed_transitions=[s.value for s in current_status.allowed_transitions()],
        )
