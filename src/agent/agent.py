"""
Embodied agent living in a scene graph.

The agent owns a body node in the live scene and an action space of named
primitives. Acting moves the body through the same callbacks the follower
uses on its scratch nodes, so simulated and real moves agree.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np

from src.navigation import MoveFn, PathFinder
from src.world import SceneGraph, SixDofPose, quat_identity

from .controls import ActuationSpec, make_move_forward, make_turn

logger = logging.getLogger(__name__)


@dataclass
class ActionSpec:
    """A named control ("move_forward", "turn_left", "turn_right", "stop") and its size."""
    name: str
    actuation: ActuationSpec = field(default_factory=ActuationSpec)


def _default_action_space() -> Dict[str, ActionSpec]:
    return {
        "move_forward": ActionSpec("move_forward", ActuationSpec(amount=0.25)),
        "turn_left": ActionSpec("turn_left", ActuationSpec(amount=10.0)),
        "turn_right": ActionSpec("turn_right", ActuationSpec(amount=10.0)),
        "stop": ActionSpec("stop"),
    }


@dataclass
class AgentConfig:
    action_space: Dict[str, ActionSpec] = field(default_factory=_default_action_space)


@dataclass
class AgentState:
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=quat_identity)  # [x, y, z, w]

    def pose(self) -> SixDofPose:
        return SixDofPose.from_position_rotation(self.position, self.rotation)


class Agent:
    def __init__(
        self,
        pathfinder: PathFinder,
        config: Optional[AgentConfig] = None,
        scene: Optional[SceneGraph] = None,
    ):
        self.config = config or AgentConfig()
        self.pathfinder = pathfinder
        self.scene = scene or SceneGraph()
        self.body = self.scene.create_node("agent")

        self._controls: Dict[str, MoveFn] = {}
        for key, spec in self.config.action_space.items():
            if spec.name == "move_forward":
                self._controls[key] = make_move_forward(pathfinder, spec.actuation.amount)
            elif spec.name == "turn_left":
                self._controls[key] = make_turn(np.radians(spec.actuation.amount))
            elif spec.name == "turn_right":
                self._controls[key] = make_turn(-np.radians(spec.actuation.amount))
            elif spec.name != "stop":
                raise ValueError(f"Unknown control {spec.name!r} for action {key!r}")

    @property
    def state(self) -> AgentState:
        return AgentState(position=self.body.translation, rotation=self.body.rotation)

    def set_state(self, state: AgentState) -> None:
        self.body.set_pose(state.rotation, state.position)

    def control_for(self, action_key: str) -> Optional[MoveFn]:
        """Callback behind an action key, or None for stop."""
        if action_key not in self.config.action_space:
            raise ValueError(f"Unknown action {action_key!r}")
        return self._controls.get(action_key)

    def act(self, action_key: str) -> bool:
        """
        Execute one action on the body.

        Returns:
            True if the move collided
        """
        control = self.control_for(action_key)
        if control is None:
            return False
        did_collide = control(self.body)
        if did_collide:
            logger.debug("Action %s collided at %s", action_key, self.body.translation)
        return did_collide
