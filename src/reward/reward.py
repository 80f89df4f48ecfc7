"""
Scoring of simulated candidate steps for the greedy follower.

A candidate is a short primitive sequence (zero or more turns in one
direction, then a forward step) that has been tried on a scratch node. The
score rewards geodesic progress and penalises turning, hugging obstacles and,
above all, colliding.
"""
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict

import numpy as np

if TYPE_CHECKING:
    from src.navigation.base import ShortestPath


@dataclass(frozen=True)
class CandidateEvaluation:
    """Outcome of one simulated forward step from a scratch pose."""
    post_geodesic_distance: float
    post_distance_to_closest_obstacle: float
    did_collide: bool


@dataclass
class RewardConfig:
    """
    Configurable reward weights.

    Progress is not bounded, so the collision penalty alone cannot keep a
    colliding step below a free one. Candidates are ranked on
    (collision-free, total) instead; the penalty still orders colliding
    candidates among themselves.
    """
    progress_scale: float = 1.0          # Weight of geodesic progress per forward step
    turn_penalty: float = 0.0125         # Per-turn cost, prefers shorter primitive sequences
    obstacle_penalty: float = 0.05       # Cost for ending closer than the closeness threshold
    collision_penalty: float = 4.0       # Cost for a step blocked by an obstacle

    def validate(self) -> None:
        if self.progress_scale <= 0:
            raise ValueError(f"progress_scale must be positive, got {self.progress_scale}")
        if min(self.turn_penalty, self.obstacle_penalty) < 0:
            raise ValueError("turn_penalty and obstacle_penalty must be non-negative")
        if self.collision_penalty <= 0:
            raise ValueError(f"collision_penalty must be positive, got {self.collision_penalty}")


@dataclass
class RewardInfo:
    """Breakdown of reward components for debugging/logging."""
    total: float = 0.0
    progress: float = 0.0
    turns: float = 0.0
    closeness: float = 0.0
    collision: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "total": self.total,
            "progress": self.progress,
            "turns": self.turns,
            "closeness": self.closeness,
            "collision": self.collision,
        }


class RewardCalculator:
    """
    Scores candidate evaluations.

    Reward components:
    1. Progress - geodesic distance removed by the step, in forward-step units
    2. Turns - small cost per turn preceding the step
    3. Closeness - penalty when clearance drops below the threshold
    4. Collision - dominant penalty when the step was blocked
    """

    def __init__(
        self,
        forward_amount: float,
        close_to_obstacle_threshold: float,
        config: RewardConfig = None,
    ):
        if forward_amount <= 0:
            raise ValueError(f"forward_amount must be positive, got {forward_amount}")
        self.config = config or RewardConfig()
        self.forward_amount = forward_amount
        self.close_to_obstacle_threshold = close_to_obstacle_threshold

    def compute(
        self,
        evaluation: CandidateEvaluation,
        path: "ShortestPath",
        prim_len: int,
    ) -> RewardInfo:
        """
        Score a candidate.

        Args:
            evaluation: Result of the simulated forward step
            path: Shortest path from the unmodified pose (provides the baseline distance)
            prim_len: Number of turns taken before the forward step

        Returns:
            RewardInfo with breakdown of all reward components
        """
        info = RewardInfo()

        # Divide by forward_amount so the score does not depend on step size
        if np.isfinite(evaluation.post_geodesic_distance):
            delta = (path.geodesic_distance - evaluation.post_geodesic_distance) / self.forward_amount
        else:
            delta = float("-inf")  # Stepping somewhere with no path is the worst progress
        info.progress = float(delta) * self.config.progress_scale

        info.turns = -self.config.turn_penalty * prim_len

        if evaluation.post_distance_to_closest_obstacle < self.close_to_obstacle_threshold:
            info.closeness = -self.config.obstacle_penalty

        if evaluation.did_collide:
            info.collision = -self.config.collision_penalty

        info.total = info.progress + info.turns + info.closeness + info.collision
        return info

