from __future__ import annotations

import logging
from enum import StrEnum
from typing import Optional

logger = logging.getLogger(__name__)


class OperationState(StrEnum):
    RECEIVED = "received"
    VALIDATED = "validated"
    EVALUATED = "evaluated"
    COMMITTED = "committed"
    REJECTED = "rejected"
    SIDE_EFFECTS_DISPATCHED = "side_effects_dispatched"


_TRANSITIONS: dict[OperationState, frozenset[OperationState]] = {
    OperationState.RECEIVED: frozenset({OperationState.VALIDATED, OperationState.REJECTED}),
    OperationState.VALIDATED: frozenset({OperationState.EVALUATED, OperationState.REJECTED}),
    OperationState.EVALUATED: frozenset({OperationState.COMMITTED, OperationState.REJECTED}),
    OperationState.COMMITTED: frozenset({OperationState.SIDE_EFFECTS_DISPATCHED}),
    OperationState.REJECTED: frozenset(),
    OperationState.SIDE_EFFECTS_DISPATCHED: frozenset(),
}


class OperationTrace:
    """Tracks one create/change/cancel/check call through its lifecycle."""

    def __init__(self, operation: str, tenant_id: Optional[str] = None) -> None:
        self.operation = operation
        self.tenant_id = tenant_id
        self.state = OperationState.RECEIVED
        self.history: list[OperationState] = [OperationState.RECEIVED]

    def advance(self, state: OperationState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"{self.operation}: illegal transition {self.state} -> {state}")
        logger.debug("%s[%s]: %s -> %s", self.operation, self.tenant_id, self.state, state)
        self.state = state
        self.history.append(state)

    def reject(self) -> None:
        if self.state != OperationState.REJECTED:
            self.advance(OperationState.REJECTED)

    @property
    def finished(self) -> bool:
        return not _TRANSITIONS[self.state]
