"""Per-session tool-call → pending file mutation bookkeeping."""

import enum
from dataclasses import dataclass
from typing import Optional

from .errors import CorrelationError


class CorrelationState(enum.Enum):
    """Lifecycle of one tool-call id within a session.

    ABSENT ──(mutating tool call translated)──► PENDING
    PENDING ──(matching tool result)──────────► CONSUMED

    CONSUMED is terminal: the id can never go PENDING again.
    """
    ABSENT = "absent"
    PENDING = "pending"
    CONSUMED = "consumed"


@dataclass(frozen=True)
class PendingMutation:
    target_path: str
    action: str  # "write" | "edit"


class CorrelationTracker:
    """Links a tool-call id to the file it is about to change.

    Entries go in when a write/edit tool call is translated and come out,
    exactly once, when the tool result with the same id arrives. Only point
    lookups are supported. The whole tracker is dropped with its session.
    """

    def __init__(self):
        self._pending: dict[str, PendingMutation] = {}
        self._consumed: set[str] = set()

    def register(self, tool_call_id: str, mutation: PendingMutation) -> None:
        state = self.state(tool_call_id)
        if state is not CorrelationState.ABSENT:
            raise CorrelationError(
                f"Tool call id {tool_call_id!r} is already {state.value}"
            )
        self._pending[tool_call_id] = mutation

    def consume(self, tool_call_id: str) -> Optional[PendingMutation]:
        """Take the pending mutation for ``tool_call_id``, or None if there isn't one."""
        mutation = self._pending.pop(tool_call_id, None)
        if mutation is not None:
            self._consumed.add(tool_call_id)
        return mutation

    def state(self, tool_call_id: str) -> CorrelationState:
        if tool_call_id in self._pending:
            return CorrelationState.PENDING
        if tool_call_id in self._consumed:
            return CorrelationState.CONSUMED
        return CorrelationState.ABSENT

    def __len__(self) -> int:
        """Number of mutations still waiting for their result."""
        return len(self._pending)
