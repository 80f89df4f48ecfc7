"""
Movement callbacks for agents and scratch nodes.

Each callback applies one fixed-size primitive to a SceneNode in place and
returns True when the move was blocked. Forward moves are filtered through
the PathFinder so bodies never enter non-navigable space.
"""
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from src.navigation import MoveFn, PathFinder
from src.world import SceneNode
from src.world.pose import FRONT, quat_rotate_vector


@dataclass
class ActuationSpec:
    """Magnitude of a primitive: world units for moves, degrees for turns."""
    amount: float = 0.0


def make_move_forward(pathfinder: PathFinder, amount: float) -> MoveFn:
    def move_forward(node: SceneNode) -> bool:
        start = node.translation
        target = start + quat_rotate_vector(node.rotation, FRONT) * amount
        reached = pathfinder.try_step(start, target)
        node.translation = reached
        return not np.allclose(reached, target, atol=1e-6)

    return move_forward


def make_turn(angle: float) -> MoveFn:
    """Turn about the node's up axis by `angle` radians (positive turns left)."""
    def turn(node: SceneNode) -> bool:
        node.rotate_local(angle)
        return False

    return turn


def make_move_fns(pathfinder: PathFinder, forward_amount: float, turn_amount: float) -> Tuple[MoveFn, MoveFn, MoveFn]:
    """
    Build (move_forward, turn_left, turn_right).

    Args:
        pathfinder: Collision filter for forward moves
        forward_amount: Step length in world units
        turn_amount: Turn angle in radians
    """
    return (
        make_move_forward(pathfinder, forward_amount),
        make_turn(turn_amount),
        make_turn(-turn_amount),
    )
