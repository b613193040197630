from enum import Enum
from typing import List
from dataclasses import dataclass


class AssignmentState(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class TransitionError(Exception):
    def __init__(self, from_state: str, to_state: str, reason: str = None):
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason or f"Cannot transition from {from_state} to {to_state}"
        super().__init__(self.reason)


@dataclass
class Transition:
    from_state: AssignmentState
    to_state: AssignmentState
    action: str


class AssignmentStateMachine:
    """
    Lifecycle of one judge's assignment to one debate.

    A pending assignment completes on the first accepted ranking submission.
    Resubmissions are allowed and leave it completed. A redraw that changes
    the debate's speakers sends a completed assignment back to pending.
    """

    TRANSITIONS = [
        Transition(AssignmentState.PENDING, AssignmentState.COMPLETED, "submit"),
        Transition(AssignmentState.COMPLETED, AssignmentState.COMPLETED, "submit"),
        Transition(AssignmentState.COMPLETED, AssignmentState.PENDING, "redraw"),
    ]

    def __init__(self, initial_state: AssignmentState = AssignmentState.PENDING):
        self._state = initial_state
        self._history: List[tuple] = []

    @property
    def state(self) -> AssignmentState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == AssignmentState.PENDING

    def can_transition(self, action: str) -> bool:
        return any(t.from_state == self._state and t.action == action for t in self.TRANSITIONS)

    def transition(self, action: str) -> AssignmentState:
        for t in self.TRANSITIONS:
            if t.from_state == self._state and t.action == action:
                old_state = self._state
                self._state = t.to_state
                self._history.append((old_state, action, self._state))
                return self._state

        raise TransitionError(
            self._state.value,
            "unknown",
            f"No valid transition for action '{action}' from state '{self._state.value}'"
        )

    def get_history(self) -> List[tuple]:
        return self._history.copy()

    @classmethod
    def from_state_string(cls, state_str: str) -> "AssignmentStateMachine":
        try:
            state = AssignmentState(state_str)
        except ValueError:
            state = AssignmentState.PENDING
        return cls(initial_state=state)
