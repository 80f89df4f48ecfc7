"""
Abstract path oracle interface.

The greedy follower only ever talks to a PathFinder: it asks for geodesic
shortest paths, clearance to the closest obstacle, and (through the movement
callbacks) collision-filtered steps. Any navmesh or grid backend can be
plugged in by implementing this interface:
- GridPathFinder: distance fields over an occupancy grid (see pathfinding.py)
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List

import numpy as np


class Action(IntEnum):
    """Follower outputs. Values match the codes used by host bindings."""
    ERROR = -2
    STOP = -1
    FORWARD = 0
    LEFT = 1
    RIGHT = 2

    @property
    def is_terminal(self) -> bool:
        return self in (Action.STOP, Action.ERROR)


MOVEMENT_ACTIONS = (Action.FORWARD, Action.LEFT, Action.RIGHT)


@dataclass
class ShortestPath:
    """A shortest-path request and, after find_path(), its answer."""
    requested_start: np.ndarray = field(default_factory=lambda: np.zeros(3))
    requested_end: np.ndarray = field(default_factory=lambda: np.zeros(3))
    points: List[np.ndarray] = field(default_factory=list)
    geodesic_distance: float = float("inf")  # inf means no path

    @property
    def found(self) -> bool:
        return bool(np.isfinite(self.geodesic_distance))

    def clear_result(self) -> None:
        self.points = []
        self.geodesic_distance = float("inf")


class PathFinder(ABC):
    """
    Abstract geodesic oracle.

    Positions are 3-vectors in the Y-up world frame. Implementations may cache
    between queries and are not thread-safe: give each thread its own oracle
    (and its own follower) rather than sharing one.
    """

    @abstractmethod
    def find_path(self, path: ShortestPath) -> bool:
        """
        Fill in `path.points` and `path.geodesic_distance`.

        Returns:
            True if a path exists; otherwise the distance is left at inf
        """
        pass

    @abstractmethod
    def distance_to_closest_obstacle(self, position: np.ndarray, max_search_radius: float = 2.0) -> float:
        """Clearance around `position`, capped at `max_search_radius`."""
        pass

    @abstractmethod
    def is_navigable(self, position: np.ndarray) -> bool:
        pass

    @abstractmethod
    def try_step(self, start: np.ndarray, end: np.ndarray) -> np.ndarray:
        """
        Move from start towards end, stopping before entering non-navigable space.

        Returns:
            The position actually reached (== end when unobstructed)
        """
        pass

    def geodesic_distance(self, start: np.ndarray, end: np.ndarray) -> float:
        path = ShortestPath(
            requested_start=np.asarray(start, dtype=np.float64),
            requested_end=np.asarray(end, dtype=np.float64),
        )
        self.find_path(path)
        return path.geodesic_distance

