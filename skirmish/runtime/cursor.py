"""Turn cursor for Skirmish.

The TurnCursor is the per-turn mutable state of one controller's turn. It
is created when the turn begins for that controller and discarded when the
turn passes on; the sequencer hands it explicitly to everything that needs
to know where the turn stands.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

from ..core.types import CharacterName, ControllerId


@dataclass
class TurnCursor:
    """Where one controller's turn stands.

    Attributes:
        controller: The controller whose turn this is
        pending: Characters still waiting to act, in order
        cycles: Decision/execute cycles run per character
        interrupted: A hard interrupt (dialogue) ended the turn early
        in_flight: A decision/execute cycle is running right now
    """

    controller: ControllerId
    pending: deque[CharacterName] = field(default_factory=deque)
    cycles: dict[CharacterName, int] = field(default_factory=dict)
    interrupted: bool = False
    interrupt_reason: str | None = None
    in_flight: bool = False

    @classmethod
    def begin(cls, controller: ControllerId, roster: list[CharacterName]) -> TurnCursor:
        return cls(controller=controller, pending=deque(roster))

    def next_character(self) -> CharacterName | None:
        if self.interrupted or not self.pending:
            return None
        return self.pending.popleft()

    def record_cycle(self, name: CharacterName) -> int:
        self.cycles[name] = self.cycles.get(name, 0) + 1
        return self.cycles[name]

    def cycles_for(self, name: CharacterName) -> int:
        return self.cycles.get(name, 0)

    def interrupt(self, reason: str) -> None:
        """Mark the turn as ended early. Remaining characters do not act."""
        self.interrupted = True
        self.interrupt_reason = reason
        self.pending.clear()

    @property
    def total_cycles(self) -> int:
        return sum(self.cycles.values())
