"""
Greedy geodesic follower.

Turns "get from this pose to that point" into discrete FORWARD / LEFT / RIGHT
actions followed by STOP. Each decision tries every primitive on scratch
nodes, scores the outcomes by geodesic progress and safety, and takes the
best one. A thrashing detector watches the recent actions and breaks
LEFT/RIGHT oscillation when it appears.

Callers must serialize calls on one instance and call reset() whenever the
goal changes or the agent moved in a way the follower did not choose.
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from src.reward import RewardCalculator, RewardConfig
from src.world import SixDofPose

from .base import Action, PathFinder, ShortestPath
from .sandbox import Candidate, GeodesicOracle, MoveFn, SimulationSandbox
from .thrashing import ThrashingDetector

logger = logging.getLogger(__name__)


@dataclass
class GreedyFollowerConfig:
    """Configuration for the greedy follower. Fixed after construction."""
    # How close to the goal (geodesic distance) counts as arrived
    goal_radius: float = 0.1875

    # Primitive sizes; must match what the movement callbacks do
    forward_amount: float = 0.25
    turn_amount: float = float(np.radians(10.0))  # radians

    # Thrashing handling
    fix_thrashing: bool = True
    thrashing_threshold: int = 16  # Length of L/R/L/R... run that counts as thrashing

    # Clearance below which a candidate is penalised
    close_to_obstacle_threshold: float = 0.2

    # Safety cap on decisions made by find_path()
    max_path_actions: int = 5000

    reward: RewardConfig = field(default_factory=RewardConfig)

    def __post_init__(self):
        if self.goal_radius < 0:
            raise ValueError(f"goal_radius must be non-negative, got {self.goal_radius}")
        if self.forward_amount <= 0:
            raise ValueError(f"forward_amount must be positive, got {self.forward_amount}")
        if not 0 < self.turn_amount <= np.pi:
            raise ValueError(f"turn_amount must be in (0, pi], got {self.turn_amount}")
        if self.max_path_actions < 1:
            raise ValueError(f"max_path_actions must be at least 1, got {self.max_path_actions}")
        if self.thrashing_threshold < 2:
            raise ValueError(f"thrashing_threshold must be at least 2, got {self.thrashing_threshold}")
        self.reward.validate()

    @property
    def max_turns(self) -> int:
        """Longest run of turns a candidate may start with."""
        return int(np.pi / self.turn_amount)


class GreedyGeodesicFollower:
    """
    Greedy per-step decision engine.

    Args:
        pathfinder: Geodesic oracle
        move_forward, turn_left, turn_right: Callbacks applying one primitive to a
            SceneNode in place and returning True on collision. They are only ever
            invoked on the follower's own scratch nodes.
        config: Primitive sizes, thresholds and reward weights
    """

    def __init__(
        self,
        pathfinder: PathFinder,
        move_forward: MoveFn,
        turn_left: MoveFn,
        turn_right: MoveFn,
        config: Optional[GreedyFollowerConfig] = None,
    ):
        self.config = config or GreedyFollowerConfig()
        self._oracle = GeodesicOracle(pathfinder)
        self._scorer = RewardCalculator(
            forward_amount=self.config.forward_amount,
            close_to_obstacle_threshold=self.config.close_to_obstacle_threshold,
            config=self.config.reward,
        )
        self._sandbox = SimulationSandbox(
            oracle=self._oracle,
            move_forward=move_forward,
            turn_left=turn_left,
            turn_right=turn_right,
            scorer=self._scorer,
            turn_amount=self.config.turn_amount,
            close_to_obstacle_threshold=self.config.close_to_obstacle_threshold,
        )
        self._move_fns: Dict[Action, MoveFn] = {
            Action.FORWARD: move_forward,
            Action.LEFT: turn_left,
            Action.RIGHT: turn_right,
        }
        self._thrashing = ThrashingDetector(self.config.thrashing_threshold)

        # Remaining actions of a plan committed to while breaking thrashing
        self._committed: "deque[Action]" = deque()
        self._last_path: Optional[ShortestPath] = None

    # ------------------------------------------------------------------
    # Single-step decisions
    # ------------------------------------------------------------------

    def next_action_along(self, pose: SixDofPose, goal: np.ndarray) -> Action:
        """
        Next action to take from `pose` towards `goal`.

        Returns:
            STOP when within goal_radius, ERROR when the oracle has no path,
            otherwise the movement primitive to execute
        """
        goal = np.asarray(goal, dtype=np.float64)
        path = self._oracle.shortest_path(pose.translation, goal)
        self._last_path = path

        if not path.found:
            logger.debug("No path from %s to %s", pose.translation, goal)
            self._committed.clear()
            return Action.ERROR

        if path.geodesic_distance <= self.config.goal_radius:
            self._committed.clear()
            return Action.STOP

        if self.config.fix_thrashing and self._committed:
            action = self._committed.popleft()
            logger.debug("Following committed plan: %s (%d left)", action.name, len(self._committed))
        else:
            candidates = self._sandbox.evaluate(pose, path)
            action = self._best_primitive(candidates)
            logger.debug(
                "dist=%.3f scores=%s -> %s",
                path.geodesic_distance,
                {a.name: round(c.score, 4) for a, c in candidates.items()},
                action.name,
            )

            if self._thrashing.is_thrashing():
                if self.config.fix_thrashing:
                    action = self._break_thrashing(candidates)
                    logger.debug("Thrashing detected, overriding with %s", action.name)
                else:
                    logger.debug("Thrashing detected (correction disabled)")

        self._thrashing.record(action)
        return action

    def next_action_along_from(
        self,
        position: np.ndarray,
        rotation: np.ndarray,
        goal: np.ndarray,
    ) -> Action:
        """Same as next_action_along, with the pose given as position + [x, y, z, w] rotation."""
        return self.next_action_along(SixDofPose.from_position_rotation(position, rotation), goal)

    def score_primitives(self, pose: SixDofPose, goal: np.ndarray) -> Dict[Action, float]:
        """
        Scores of FORWARD / LEFT / RIGHT from `pose`, without recording anything.

        Empty when the decision would be STOP or ERROR. The decision itself
        ranks collision-free candidates above colliding ones before comparing
        these scores.
        """
        path = self._oracle.shortest_path(pose.translation, np.asarray(goal, dtype=np.float64))
        if not path.found or path.geodesic_distance <= self.config.goal_radius:
            return {}
        return {action: c.score for action, c in self._sandbox.evaluate(pose, path).items()}

    def shortest_path(self, position: np.ndarray, goal: np.ndarray) -> ShortestPath:
        """Query the oracle directly (no decision, nothing recorded)."""
        return self._oracle.shortest_path(position, goal)

    def _best_primitive(self, candidates: Dict[Action, Candidate]) -> Action:
        # Iteration order gives the FORWARD > LEFT > RIGHT tie-break
        best_action = Action.FORWARD
        best_rank = candidates[Action.FORWARD].rank
        for action in (Action.LEFT, Action.RIGHT):
            if candidates[action].rank > best_rank:
                best_action = action
                best_rank = candidates[action].rank
        return best_action

    def _break_thrashing(self, candidates: Dict[Action, Candidate]) -> Action:
        """
        Leave a LEFT/RIGHT oscillation.

        Step forward if that is collision-free. Otherwise keep turning the way
        the last turn went and commit to that direction's best sequence, so
        the next calls replay it instead of re-deciding.
        """
        if not candidates[Action.FORWARD].evaluation.did_collide:
            return Action.FORWARD

        candidate = candidates[self._thrashing.last_turn]
        self._committed.extend(candidate.primitives[1:])
        return candidate.first_action

    # ------------------------------------------------------------------
    # Whole-path synthesis
    # ------------------------------------------------------------------

    def find_path(self, pose: SixDofPose, goal: np.ndarray) -> List[Action]:
        """
        Roll the policy forward on a scratch node until STOP or ERROR.

        At most max_path_actions decisions are made; if none of them was
        terminal, ERROR is appended.
        """
        goal = np.asarray(goal, dtype=np.float64)
        node = self._sandbox.path_node
        node.set_pose(pose.rotation, pose.translation)

        actions: List[Action] = []
        while len(actions) < self.config.max_path_actions:
            action = self.next_action_along(node.pose(), goal)
            actions.append(action)
            if action.is_terminal:
                break
            self._move_fns[action](node)
        else:
            logger.warning(
                "find_path gave up after %d actions without reaching the goal",
                self.config.max_path_actions,
            )
            actions.append(Action.ERROR)

        logger.info("find_path: %d actions, ended with %s", len(actions), actions[-1].name)
        return actions

    def find_path_from(self, position: np.ndarray, rotation: np.ndarray, goal: np.ndarray) -> List[Action]:
        return self.find_path(SixDofPose.from_position_rotation(position, rotation), goal)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Forget action history, any committed plan and the cached path."""
        self._thrashing.clear()
        self._committed.clear()
        self._last_path = None

    def is_thrashing(self) -> bool:
        return self._thrashing.is_thrashing()

    @property
    def thrashing_detector(self) -> ThrashingDetector:
        return self._thrashing

    @property
    def history(self) -> List[Action]:
        return self._thrashing.history

    @property
    def last_path(self) -> Optional[ShortestPath]:
        """Shortest path computed by the most recent decision."""
        return self._last_path

    @property
    def num_total_turns(self) -> int:
        return self._sandbox.num_total_turns
