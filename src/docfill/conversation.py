"""Append-only conversation history for a draft.

The log is the single source of truth for what the oracle saw on earlier
turns; the reconciler passes its tail into every oracle call.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant"]


class Turn(BaseModel):
    """One message in the conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class ConversationLog(BaseModel):
    """Ordered, append-only sequence of turns."""

    turns: list[Turn] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.turns)

    def append(self, turn: Turn) -> None:
        self.turns.append(turn)

    def tail(self, n: int) -> list[Turn]:
        """Most recent n turns, oldest first."""
        if n <= 0:
            return []
        return list(self.turns[-n:])

    def all(self) -> list[Turn]:
        """Copy of every turn in arrival order."""
        return list(self.turns)
