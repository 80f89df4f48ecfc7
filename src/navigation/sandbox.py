"""
Scratch-space simulation for the greedy follower.

The sandbox owns a private scene graph whose nodes stand in for the agent
while candidate moves are tried. The caller's pose is copied onto a scratch
node before every evaluation, so nothing here can leak into live state or
into a later evaluation.
"""
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

import numpy as np

from src.reward import CandidateEvaluation, RewardCalculator, RewardInfo
from src.world import SceneGraph, SceneNode, SixDofPose

from .base import Action, PathFinder, ShortestPath

# Applies one primitive to a node in place; returns True if the move collided
MoveFn = Callable[[SceneNode], bool]


class GeodesicOracle:
    """Thin adapter over a PathFinder for the questions the follower asks."""

    def __init__(self, pathfinder: PathFinder):
        self.pathfinder = pathfinder

    def shortest_path(self, start: np.ndarray, end: np.ndarray) -> ShortestPath:
        path = ShortestPath(
            requested_start=np.array(start, dtype=np.float64),
            requested_end=np.array(end, dtype=np.float64),
        )
        self.pathfinder.find_path(path)
        return path

    def geodesic_distance(self, start: np.ndarray, end: np.ndarray) -> float:
        return self.pathfinder.geodesic_distance(start, end)

    def distance_to_closest_obstacle(self, position: np.ndarray, max_search_radius: float) -> float:
        return self.pathfinder.distance_to_closest_obstacle(position, max_search_radius)


@dataclass
class Candidate:
    """A primitive sequence (turns, then FORWARD) and how it scored."""
    primitives: List[Action]
    evaluation: CandidateEvaluation
    reward: RewardInfo

    @property
    def first_action(self) -> Action:
        return self.primitives[0]

    @property
    def score(self) -> float:
        return self.reward.total

    @property
    def rank(self) -> Tuple[bool, float]:
        """Ordering key: any collision-free candidate beats any colliding one, then score."""
        return (not self.evaluation.did_collide, self.reward.total)


class SimulationSandbox:
    """
    Evaluates FORWARD / LEFT / RIGHT from a reference pose on scratch nodes.

    FORWARD is a single forward step. LEFT and RIGHT are scored by the best
    "turn k times, then step forward" sequence for k = 1..num_total_turns-1,
    which covers a half circle in each direction.
    """

    def __init__(
        self,
        oracle: GeodesicOracle,
        move_forward: MoveFn,
        turn_left: MoveFn,
        turn_right: MoveFn,
        scorer: RewardCalculator,
        turn_amount: float,
        close_to_obstacle_threshold: float,
    ):
        self._oracle = oracle
        self._move_forward = move_forward
        self._turn_left = turn_left
        self._turn_right = turn_right
        self._scorer = scorer
        self._close_to_obstacle_threshold = close_to_obstacle_threshold

        # Plus one so the forward step after a half-circle turn is tried too
        self.num_total_turns = int(np.pi / turn_amount) + 1

        self._scene = SceneGraph()
        self._left_node = self._scene.create_node("left")
        self._right_node = self._scene.create_node("right")
        self._try_step_node = self._scene.create_node("try_step")
        self.path_node = self._scene.create_node("find_path")

    def try_step(self, node: SceneNode, goal: np.ndarray) -> CandidateEvaluation:
        """Step forward from `node`'s pose on the try-step proxy and measure the result."""
        self._try_step_node.copy_transform_from(node)
        did_collide = bool(self._move_forward(self._try_step_node))
        new_position = self._try_step_node.absolute_translation()

        return CandidateEvaluation(
            post_geodesic_distance=self._oracle.geodesic_distance(new_position, goal),
            post_distance_to_closest_obstacle=self._oracle.distance_to_closest_obstacle(
                new_position, self._close_to_obstacle_threshold
            ),
            did_collide=did_collide,
        )

    def _candidate(self, node: SceneNode, path: ShortestPath, turns: List[Action]) -> Candidate:
        evaluation = self.try_step(node, path.requested_end)
        reward = self._scorer.compute(evaluation, path, len(turns))
        return Candidate(primitives=turns + [Action.FORWARD], evaluation=evaluation, reward=reward)

    def evaluate(self, pose: SixDofPose, path: ShortestPath) -> Dict[Action, Candidate]:
        """
        Best candidate for each movement primitive.

        Args:
            pose: Reference pose (never modified)
            path: Shortest path from pose to the goal

        Returns:
            {FORWARD: ..., LEFT: ..., RIGHT: ...}
        """
        self._left_node.set_pose(pose.rotation, pose.translation)
        self._right_node.set_pose(pose.rotation, pose.translation)

        candidates = {Action.FORWARD: self._candidate(self._left_node, path, [])}

        left_turns: List[Action] = []
        right_turns: List[Action] = []
        for _ in range(1, self.num_total_turns):
            self._turn_left(self._left_node)
            left_turns.append(Action.LEFT)
            self._turn_right(self._right_node)
            right_turns.append(Action.RIGHT)

            left = self._candidate(self._left_node, path, list(left_turns))
            right = self._candidate(self._right_node, path, list(right_turns))
            if Action.LEFT not in candidates or left.rank > candidates[Action.LEFT].rank:
                candidates[Action.LEFT] = left
            if Action.RIGHT not in candidates or right.rank > candidates[Action.RIGHT].rank:
                candidates[Action.RIGHT] = right

        return candidates
