"""
Deletion escalation: a gated confirmation dialog that needs K confirmations in a row.

    IDLE → CONFIRMING(1) → ... → CONFIRMING(K) → EXECUTING → DONE
              └────────── cancel ──────────┘        │
                       CANCELLED → IDLE             └ failure → CONFIRMING(K)

K=1 is the ordinary approve/reject dialog; hierarchy deletes use K=3. The action
runs exactly once per completed sequence and only from EXECUTING.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from app.services.errors import EscalationAborted, InvalidTransition, MutationFailed, OptionsAdminError

logger = logging.getLogger(__name__)


class EscalationState(str, enum.Enum):
    IDLE = "idle"
    CONFIRMING = "confirming"
    EXECUTING = "executing"
    DONE = "done"
    CANCELLED = "cancelled"


TRANSITIONS: dict[EscalationState, set[EscalationState]] = {
    EscalationState.IDLE: {EscalationState.CONFIRMING},
    EscalationState.CONFIRMING: {EscalationState.CONFIRMING, EscalationState.EXECUTING, EscalationState.CANCELLED},
    EscalationState.EXECUTING: {EscalationState.DONE, EscalationState.CONFIRMING},
    EscalationState.DONE: {EscalationState.CONFIRMING, EscalationState.IDLE},
    EscalationState.CANCELLED: {EscalationState.IDLE},
}


@dataclass
class StateTransition:
    from_state: EscalationState
    to_state: EscalationState
    step: int = 0
    reason: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class ConfirmationPrompt:
    step: int
    total_steps: int
    title: str
    message: str
    confirm_text: str = "Confirm"
    cancel_text: str = "Cancel"
    severity: str = "warning"  # warning | error | info | success


def _label_of(target: Any) -> str:
    return str(getattr(target, "label", target))


class DeletionEscalation:
    """Confirmation gate in front of one destructive `action(target)`.

    `child_level_name` names what sits under the target (used in the cascade
    warning). For K=1, `title` and `message` replace the default dialog text.
    """

    def __init__(
        self,
        action: Callable[[Any], Awaitable[Any]],
        steps: int = 3,
        child_level_name: str | None = None,
        title: str = "Confirm Action",
        message: str = "Are you sure you want to proceed?",
    ):
        if steps < 1:
            raise ValueError("steps must be >= 1")
        self._action = action
        self.steps = steps
        self.child_level_name = child_level_name
        self._title = title
        self._message = message

        self.state = EscalationState.IDLE
        self.step = 0
        self.target: Any = None
        self.error: str | None = None
        self.outcome: OptionsAdminError | None = None
        self.history: list[StateTransition] = []

    def _transition(self, to_state: EscalationState, step: int = 0, reason: str | None = None) -> None:
        if to_state not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"Cannot go from {self.state.value} to {to_state.value}")
        self.history.append(StateTransition(self.state, to_state, step=step, reason=reason))
        logger.debug("Escalation %s -> %s (step %s/%s) %s", self.state.value, to_state.value, step, self.steps, reason or "")
        self.state = to_state
        self.step = step

    @property
    def is_open(self) -> bool:
        return self.state in (EscalationState.CONFIRMING, EscalationState.EXECUTING)

    @property
    def prompt(self) -> ConfirmationPrompt | None:
        if self.state not in (EscalationState.CONFIRMING, EscalationState.EXECUTING):
            return None
        return self._prompt_for(self.step or self.steps)

    def _prompt_for(self, step: int) -> ConfirmationPrompt:
        k = self.steps
        if k == 1:
            return ConfirmationPrompt(step, k, self._title, self._message)
        label = _label_of(self.target)
        if step == 1:
            return ConfirmationPrompt(
                step, k,
                title=f"Delete {label}?",
                message=f'Are you sure you want to delete "{label}"?',
                confirm_text="Delete",
            )
        if step < k:
            children = f"all {self.child_level_name} entries" if self.child_level_name else "any items"
            return ConfirmationPrompt(
                step, k,
                title="Warning: linked items",
                message=f'Deleting "{label}" will also remove {children} linked to it. Do you want to continue?',
                confirm_text="Continue",
            )
        return ConfirmationPrompt(
            step, k,
            title="Final warning",
            message=f'This will permanently delete "{label}" and everything under it. This action cannot be undone.',
            confirm_text="Delete permanently",
            severity="error",
        )

    def request(self, target: Any) -> ConfirmationPrompt:
        """Open the dialog for `target` at step 1. Progress from earlier requests is never kept."""
        if self.is_open:
            raise InvalidTransition("A confirmation is already in progress")
        self.target = target
        self.error = None
        self.outcome = None
        self._transition(EscalationState.CONFIRMING, 1, reason="requested")
        return self._prompt_for(1)

    async def confirm(self) -> EscalationState:
        """Advance one step; on the last step run the action.

        A failing action puts the dialog back on its last step with `error` set
        and raises MutationFailed, so the final confirm can be retried.
        """
        if self.state != EscalationState.CONFIRMING:
            raise InvalidTransition(f"Nothing to confirm (state: {self.state.value})")
        if self.step < self.steps:
            self._transition(EscalationState.CONFIRMING, self.step + 1, reason="confirmed")
            return self.state

        self._transition(EscalationState.EXECUTING, self.steps)
        try:
            await self._action(self.target)
        except OptionsAdminError as e:
            self.error = e.message
            self._transition(EscalationState.CONFIRMING, self.steps, reason=f"failed: {e.message}")
            logger.warning("Confirmed action on %s failed: %s", _label_of(self.target), e.message)
            if isinstance(e, MutationFailed):
                raise
            raise MutationFailed(e.message) from e
        except BaseException as e:
            # Unexpected errors and task cancellation still leave the dialog retryable
            self.error = str(e) or type(e).__name__
            self._transition(EscalationState.CONFIRMING, self.steps, reason=f"failed: {self.error}")
            logger.exception("Confirmed action on %s raised unexpectedly", _label_of(self.target))
            raise
        self.error = None
        self._transition(EscalationState.DONE, self.steps)
        logger.info("Confirmed action on %s completed after %d confirmation(s)", _label_of(self.target), self.steps)
        return self.state

    def cancel(self) -> EscalationState:
        """Discard progress. Not an error: the outcome is recorded as EscalationAborted."""
        if self.state == EscalationState.EXECUTING:
            raise InvalidTransition("The action is already running")
        if self.state == EscalationState.CONFIRMING:
            step = self.step
            self._transition(EscalationState.CANCELLED, step, reason="cancelled")
            self.outcome = EscalationAborted(f"Cancelled at step {step} of {self.steps}")
            self._transition(EscalationState.IDLE)
        elif self.state in (EscalationState.DONE, EscalationState.CANCELLED):
            self._transition(EscalationState.IDLE)
        self.error = None
        return self.state
