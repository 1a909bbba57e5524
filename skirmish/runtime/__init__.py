"""Turn runtime for Skirmish: cursor, repair loop and sequencer."""

from .cursor import TurnCursor
from .repair import RepairController, RepairResult, RepairState, RetryState
from .sequencer import ActionRecord, TurnReport, TurnSequencer

__all__ = [
    "TurnCursor",
    "RepairController",
    "RepairResult",
    "RepairState",
    "RetryState",
    "ActionRecord",
    "TurnReport",
    "TurnSequencer",
]
