"""
Thrashing detection for the greedy follower.

Near an obstacle edge a greedy policy can flip between LEFT and RIGHT forever
because neither turn wins by enough to commit. The detector keeps a bounded
window of recent movement actions and reports when the whole window is a
strict LEFT/RIGHT alternation.
"""
from collections import deque
from typing import List

from .base import MOVEMENT_ACTIONS, Action

OPPOSITE_TURNS = {
    Action.LEFT: Action.RIGHT,
    Action.RIGHT: Action.LEFT,
}


class ThrashingDetector:
    """Fixed-capacity history of movement actions."""

    def __init__(self, threshold: int = 16):
        if threshold < 2:
            raise ValueError(f"Thrashing threshold must be at least 2, got {threshold}")
        self.threshold = threshold
        self._history: "deque[Action]" = deque(maxlen=threshold)

    def record(self, action: Action) -> None:
        """Append a movement action. STOP and ERROR are never recorded."""
        action = Action(action)
        if action not in MOVEMENT_ACTIONS:
            raise ValueError(f"Terminal action {action.name} cannot be recorded")
        self._history.append(action)

    def is_thrashing(self) -> bool:
        if len(self._history) < self.threshold:
            return False

        history = list(self._history)
        if history[-1] not in OPPOSITE_TURNS:
            return False
        for prev, nxt in zip(history, history[1:]):
            if OPPOSITE_TURNS.get(prev) != nxt:
                return False
        return True

    @property
    def last_turn(self) -> Action:
        """Most recent LEFT/RIGHT in the window (LEFT if none)."""
        for action in reversed(self._history):
            if action in OPPOSITE_TURNS:
                return action
        return Action.LEFT

    @property
    def history(self) -> List[Action]:
        return list(self._history)

    def clear(self) -> None:
        self._history.clear()

    def __len__(self) -> int:
        return len(self._history)
