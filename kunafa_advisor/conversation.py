"""Ordered, append-only chat log for one branch session.

Each turn carries an explicit :class:`TurnStatus`, so "is this turn still
receiving text" is a checked state rather than an assumption about the last
element of a list. Only the single in-progress model turn may change; the log
is otherwise append-only and is cleared only as a whole.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from .errors import ConversationStateError

logger = logging.getLogger(__name__)

USER_ROLE = "user"
MODEL_ROLE = "model"


class TurnStatus(str, Enum):
    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class Turn:
    role: str
    content: str = ""
    status: TurnStatus = TurnStatus.COMPLETE

    @property
    def in_progress(self) -> bool:
        return self.role == MODEL_ROLE and self.status in (
            TurnStatus.PENDING,
            TurnStatus.STREAMING,
        )

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class Conversation:
    def __init__(self) -> None:
        self._turns: list[Turn] = []

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    @property
    def in_progress(self) -> bool:
        return bool(self._turns) and self._turns[-1].in_progress

    def reset(self) -> None:
        self._turns.clear()

    def append_user(self, text: str) -> Turn:
        self._ensure_idle()
        turn = Turn(role=USER_ROLE, content=text)
        self._turns.append(turn)
        return turn

    def append_model_placeholder(self) -> Turn:
        self._ensure_idle()
        turn = Turn(role=MODEL_ROLE, status=TurnStatus.PENDING)
        self._turns.append(turn)
        return turn

    def append_fragment(self, text: str) -> None:
        turn = self._streaming_turn()
        turn.content += text
        turn.status = TurnStatus.STREAMING

    def replace_content(self, text: str) -> None:
        """Set the in-progress turn to the running total received so far."""
        turn = self._streaming_turn()
        turn.content = text
        turn.status = TurnStatus.STREAMING

    def complete(self) -> None:
        turn = self._streaming_turn()
        turn.status = TurnStatus.COMPLETE

    def fail(self, message: str) -> None:
        turn = self._streaming_turn()
        turn.content = message
        turn.status = TurnStatus.FAILED
        logger.info("Model turn %d marked failed", len(self._turns) - 1)

    def history(self) -> list[dict[str, str]]:
        """The log in the ``[{role, content}]`` shape the relay accepts."""
        return [turn.to_dict() for turn in self._turns]

    def _ensure_idle(self) -> None:
        if self.in_progress:
            raise ConversationStateError(
                "cannot append a turn while a model turn is still streaming"
            )

    def _streaming_turn(self) -> Turn:
        if not self.in_progress:
            raise ConversationStateError("last turn is not an in-progress model turn")
        return self._turns[-1]
