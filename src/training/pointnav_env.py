"""
Gym environment for point-goal navigation with discrete primitives.

The agent starts at a random free pose and must call STOP within the goal
radius. The greedy follower is available as an expert through
`expert_action()`, which makes the environment usable for imitation
learning as well as for evaluating the follower itself.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import gymnasium as gym
from gymnasium import spaces
import numpy as np

from src.agent import Agent, AgentConfig, AgentState, ShortestPathFollower
from src.navigation import GridPathFinder, ObstacleMap, ObstacleMapConfig
from src.world import quat_from_heading


def default_layout() -> Dict[str, Any]:
    """A 10x10 room with a dividing wall, a pillar and a table."""
    return {
        "obstacles": [
            {"shape": "box", "x": 5.0, "z": 3.5, "width": 0.2, "depth": 7.0},
            {"shape": "circle", "x": 2.5, "z": 7.5, "radius": 0.6},
            {"shape": "box", "x": 7.5, "z": 6.0, "width": 1.5, "depth": 1.0},
        ]
    }


@dataclass
class PointNavConfig:
    """Configuration for PointNavEnv."""
    world_size: float = 10.0
    layout: Dict[str, Any] = field(default_factory=default_layout)
    obstacle_map: ObstacleMapConfig = field(default_factory=ObstacleMapConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)

    goal_radius: Optional[float] = None  # Defaults to 0.75 * forward step
    max_episode_steps: int = 500
    min_start_goal_distance: float = 1.0

    # Rewards
    success_reward: float = 10.0
    slack_penalty: float = -0.01         # Per-step time pressure
    collision_penalty: float = -0.1


class PointNavEnv(gym.Env):
    """
    Point-goal navigation.

    Action space: Discrete(4) - STOP, FORWARD, LEFT, RIGHT
    Observation space: Box(3,) - geodesic distance to goal, cos and sin of
        the heading error towards the next waypoint
    """

    metadata = {"render_modes": ["ansi"]}

    ACTION_KEYS: List[str] = ["stop", "move_forward", "turn_left", "turn_right"]

    def __init__(self, config: Optional[PointNavConfig] = None, render_mode: Optional[str] = None):
        super().__init__()
        self.config = config or PointNavConfig()
        self.render_mode = render_mode

        self.obstacle_map = ObstacleMap(self.config.world_size, self.config.obstacle_map)
        self.obstacle_map.build_from_layout(self.config.layout)
        self.pathfinder = GridPathFinder(self.obstacle_map)
        self.agent = Agent(self.pathfinder, self.config.agent)
        self.follower = ShortestPathFollower(
            self.pathfinder,
            self.agent,
            goal_radius=self.config.goal_radius,
            stop_key="stop",
        )

        self.action_space = spaces.Discrete(len(self.ACTION_KEYS))
        self.observation_space = spaces.Box(
            low=np.array([0.0, -1.0, -1.0], dtype=np.float32),
            high=np.array([np.inf, 1.0, 1.0], dtype=np.float32),
            dtype=np.float32,
        )

        self._goal: Optional[np.ndarray] = None
        self._current_step = 0
        self._prev_distance = 0.0

    @property
    def goal(self) -> Optional[np.ndarray]:
        return None if self._goal is None else self._goal.copy()

    def reset(
        self,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[np.ndarray, Dict[str, Any]]:
        """
        Start a new episode.

        Args:
            seed: Random seed
            options: Optional "start" (3-vector), "heading" (radians) and
                "goal" (3-vector); anything missing is sampled

        Returns:
            observation, info
        """
        super().reset(seed=seed)
        options = options or {}

        start, goal = self._sample_start_goal(options.get("start"), options.get("goal"))
        heading = options.get("heading")
        if heading is None:
            heading = float(self.np_random.uniform(-np.pi, np.pi))

        self.agent.set_state(AgentState(position=start, rotation=quat_from_heading(heading)))
        self._goal = goal
        self._current_step = 0
        self.follower.reset()
        self._prev_distance = self.pathfinder.geodesic_distance(start, goal)

        info = {
            "start": start.copy(),
            "goal": goal.copy(),
            "geodesic_distance": self._prev_distance,
        }
        return self._get_observation(), info

    def _sample_start_goal(
        self,
        start: Optional[np.ndarray],
        goal: Optional[np.ndarray],
        max_tries: int = 100,
    ) -> Tuple[np.ndarray, np.ndarray]:
        for _ in range(max_tries):
            s = np.asarray(start, dtype=np.float64) if start is not None else self.pathfinder.sample_navigable_point(self.np_random)
            g = np.asarray(goal, dtype=np.float64) if goal is not None else self.pathfinder.sample_navigable_point(self.np_random)
            distance = self.pathfinder.geodesic_distance(s, g)
            if not np.isfinite(distance):
                if start is not None and goal is not None:
                    raise ValueError(f"No path between requested start {s} and goal {g}")
                continue
            if distance >= self.config.min_start_goal_distance or (start is not None and goal is not None):
                return s, g
        raise RuntimeError(f"Could not sample a connected start/goal pair in {max_tries} tries")

    def step(self, action: int) -> Tuple[np.ndarray, float, bool, bool, Dict[str, Any]]:
        """
        Execute one primitive.

        Returns:
            observation, reward, terminated, truncated, info
        """
        if self._goal is None:
            raise RuntimeError("Environment not initialized. Call reset() first.")

        action_key = self.ACTION_KEYS[int(action)]
        self._current_step += 1

        did_collide = self.agent.act(action_key)
        distance = self.pathfinder.geodesic_distance(self.agent.state.position, self._goal)

        reward = self.config.slack_penalty
        if np.isfinite(distance) and np.isfinite(self._prev_distance):
            reward += self._prev_distance - distance
        if did_collide:
            reward += self.config.collision_penalty

        terminated = False
        success = False
        if action_key == "stop":
            terminated = True
            success = bool(distance <= self.follower.goal_radius)
            if success:
                reward += self.config.success_reward

        truncated = not terminated and self._current_step >= self.config.max_episode_steps
        self._prev_distance = distance

        info = {
            "action": action_key,
            "did_collide": did_collide,
            "geodesic_distance": distance,
            "success": success,
            "step": self._current_step,
        }
        return self._get_observation(), float(reward), terminated, truncated, info

    def expert_action(self) -> int:
        """
        Action index the greedy follower would take now.

        Raises:
            GreedyFollowerError: the goal is unreachable from the agent
        """
        if self._goal is None:
            raise RuntimeError("Environment not initialized. Call reset() first.")
        key = self.follower.next_action_along(self._goal)
        return self.ACTION_KEYS.index(key)

    def _get_observation(self) -> np.ndarray:
        state = self.agent.state
        path = self.follower.impl.shortest_path(state.position, self._goal)

        if not path.found:
            return np.array([0.0, 1.0, 0.0], dtype=np.float32)

        waypoint = path.points[1] if len(path.points) > 1 else self._goal
        offset = waypoint - state.position
        desired = np.arctan2(-offset[0], -offset[2])
        error = desired - state.pose().heading
        return np.array(
            [path.geodesic_distance, np.cos(error), np.sin(error)],
            dtype=np.float32,
        )

    def render(self) -> Optional[str]:
        """ASCII map with the agent (A), goal (G) and planned path."""
        if self._goal is None:
            return "Environment not initialized."

        position = self.agent.state.position
        path = self.follower.impl.shortest_path(position, self._goal)
        marks = {
            self.obstacle_map.world_to_grid(self._goal[0], self._goal[2]): "G",
            self.obstacle_map.world_to_grid(position[0], position[2]): "A",
        }
        text = self.obstacle_map.to_ascii(self.pathfinder.cells_of(path.points), marks)
        if self.render_mode == "ansi":
            return text
        print(text)
        return None

    def close(self) -> None:
        """Clean up resources."""
        self._goal = None
