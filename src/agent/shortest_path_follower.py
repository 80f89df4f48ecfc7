"""
Agent-facing wrapper around GreedyGeodesicFollower.

Works in the agent's vocabulary: reads the agent's current state, returns
action keys from its action space, and raises instead of returning ERROR.
Forward / turn sizes and the default goal radius come from the action space.
"""
import logging
from typing import Dict, List, Optional

import numpy as np

from src.navigation import (
    Action,
    GreedyFollowerConfig,
    GreedyGeodesicFollower,
    PathFinder,
)
from src.reward import RewardConfig

from .agent import Agent

logger = logging.getLogger(__name__)


class GreedyFollowerError(RuntimeError):
    """Raised when the follower cannot produce an action (no path, or gave up)."""
    pass


def _find_key(agent: Agent, control_name: str) -> Optional[str]:
    for key, spec in agent.config.action_space.items():
        if spec.name == control_name:
            return key
    return None


class ShortestPathFollower:
    """
    Greedy follower bound to one agent.

    Args:
        pathfinder: Geodesic oracle for the agent's scene
        agent: The agent to steer
        goal_radius: Arrival distance; defaults to 0.75 * forward step
        stop_key: Returned for STOP (None unless given)
        forward_key, left_key, right_key: Action keys; looked up by control
            name in the agent's action space when omitted
        fix_thrashing, thrashing_threshold: Thrashing handling
    """

    def __init__(
        self,
        pathfinder: PathFinder,
        agent: Agent,
        goal_radius: Optional[float] = None,
        *,
        stop_key: Optional[str] = None,
        forward_key: Optional[str] = None,
        left_key: Optional[str] = None,
        right_key: Optional[str] = None,
        fix_thrashing: bool = True,
        thrashing_threshold: int = 16,
        reward: Optional[RewardConfig] = None,
        max_path_actions: int = 5000,
    ):
        self.pathfinder = pathfinder
        self.agent = agent

        forward_key = forward_key or _find_key(agent, "move_forward")
        left_key = left_key or _find_key(agent, "turn_left")
        right_key = right_key or _find_key(agent, "turn_right")
        for name, key in (("move_forward", forward_key), ("turn_left", left_key), ("turn_right", right_key)):
            if key is None:
                raise ValueError(f"Agent action space has no {name} action")

        action_space = agent.config.action_space
        forward_amount = action_space[forward_key].actuation.amount
        turn_amount = float(np.radians(action_space[left_key].actuation.amount))
        right_amount = float(np.radians(action_space[right_key].actuation.amount))
        if not np.isclose(turn_amount, right_amount):
            raise ValueError(
                f"Left and right turns must be the same size, got "
                f"{np.degrees(turn_amount):.2f} and {np.degrees(right_amount):.2f} degrees"
            )

        if goal_radius is None:
            goal_radius = 0.75 * forward_amount

        self.config = GreedyFollowerConfig(
            goal_radius=goal_radius,
            forward_amount=forward_amount,
            turn_amount=turn_amount,
            fix_thrashing=fix_thrashing,
            thrashing_threshold=thrashing_threshold,
            max_path_actions=max_path_actions,
            reward=reward or RewardConfig(),
        )
        self.impl = GreedyGeodesicFollower(
            pathfinder,
            agent.control_for(forward_key),
            agent.control_for(left_key),
            agent.control_for(right_key),
            config=self.config,
        )

        self.action_mapping: Dict[Action, Optional[str]] = {
            Action.STOP: stop_key,
            Action.FORWARD: forward_key,
            Action.LEFT: left_key,
            Action.RIGHT: right_key,
        }
        self.last_goal: Optional[np.ndarray] = None

    @property
    def goal_radius(self) -> float:
        return self.config.goal_radius

    def next_action_along(self, goal_pos: np.ndarray) -> Optional[str]:
        """
        Action key to execute next from the agent's current state.

        The follower is reset automatically when the goal changes.

        Raises:
            GreedyFollowerError: no path from the agent to the goal
        """
        goal_pos = np.asarray(goal_pos, dtype=np.float64)
        if self.last_goal is None or not np.allclose(goal_pos, self.last_goal):
            self.reset()
            self.last_goal = goal_pos

        state = self.agent.state
        next_act = self.impl.next_action_along(state.pose(), goal_pos)
        if next_act == Action.ERROR:
            raise GreedyFollowerError(f"No path from {state.position} to {goal_pos}")
        return self.action_mapping[next_act]

    def find_path(self, goal_pos: np.ndarray) -> List[Optional[str]]:
        """
        Full list of action keys from the agent's current state, ending with the stop key.

        Raises:
            GreedyFollowerError: no path, or the action cap was reached
        """
        goal_pos = np.asarray(goal_pos, dtype=np.float64)
        self.reset()
        state = self.agent.state
        path = self.impl.find_path(state.pose(), goal_pos)
        if path[-1] == Action.ERROR:
            raise GreedyFollowerError(
                f"Could not find a path to {goal_pos} ({len(path) - 1} actions before giving up)"
            )
        # The scratch rollout left history behind; start live stepping fresh
        self.reset()
        return [self.action_mapping[a] for a in path]

    def reset(self) -> None:
        self.impl.reset()
