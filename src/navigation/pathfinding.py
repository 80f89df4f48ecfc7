"""
Geodesic path oracle over an occupancy grid.

A Dijkstra sweep rooted at the goal cell gives the shortest 8-connected
distance from every cell to the goal. Distance queries read that field
(straight-line when the two points see each other), and waypoint lists are
extracted by descending the field and then smoothed with line-of-sight checks.
Fields are cached per goal cell because the follower asks many "what if"
questions about the same goal.
"""
import heapq
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from .base import PathFinder, ShortestPath
from .obstacle_map import ObstacleMap

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]


@dataclass
class PathfindingConfig:
    """Configuration for the grid planner."""
    diagonal_movement: bool = True  # Allow 8-directional movement
    smooth_path: bool = True  # Drop waypoints that have line of sight past them
    field_cache_size: int = 8  # Goal cells whose distance fields are kept
    step_resolution: float = 0.25  # try_step increment, as a fraction of a cell


@dataclass(order=True)
class PriorityNode:
    """Node for the Dijkstra priority queue."""
    cost: float
    position: Cell = field(compare=False)


class GridPathFinder(PathFinder):
    """
    PathFinder backed by an ObstacleMap.

    Positions are (x, y, z) with the floor on the x/z plane; y is carried
    through unchanged.
    """

    def __init__(self, obstacle_map: ObstacleMap, config: Optional[PathfindingConfig] = None):
        self.config = config or PathfindingConfig()
        self.obstacle_map = obstacle_map
        self._fields: "OrderedDict[Cell, np.ndarray]" = OrderedDict()
        self._fields_version = obstacle_map.version

    # ------------------------------------------------------------------
    # Grid search
    # ------------------------------------------------------------------

    def _movement_cost(self, from_pos: Cell, to_pos: Cell) -> float:
        dx = abs(from_pos[0] - to_pos[0])
        dz = abs(from_pos[1] - to_pos[1])
        if dx + dz == 2:  # Diagonal move
            return 1.41421356 * self.obstacle_map.resolution
        return self.obstacle_map.resolution

    def _distance_field(self, goal: Cell) -> np.ndarray:
        """Cell-centre geodesic distance to `goal` for every cell (inf if unreachable)."""
        if self._fields_version != self.obstacle_map.version:
            self._fields.clear()
            self._fields_version = self.obstacle_map.version

        cached = self._fields.get(goal)
        if cached is not None:
            self._fields.move_to_end(goal)
            return cached

        size = self.obstacle_map.grid_size
        dist = np.full((size, size), np.inf)
        dist[goal[1], goal[0]] = 0.0

        open_set: List[PriorityNode] = [PriorityNode(0.0, goal)]
        while open_set:
            node = heapq.heappop(open_set)
            gx, gz = node.position
            if node.cost > dist[gz, gx]:
                continue  # Stale entry

            for neighbor in self.obstacle_map.get_neighbors(gx, gz, diagonal=self.config.diagonal_movement):
                tentative = node.cost + self._movement_cost(node.position, neighbor)
                if tentative < dist[neighbor[1], neighbor[0]]:
                    dist[neighbor[1], neighbor[0]] = tentative
                    heapq.heappush(open_set, PriorityNode(tentative, neighbor))

        self._fields[goal] = dist
        if len(self._fields) > self.config.field_cache_size:
            self._fields.popitem(last=False)

        logger.debug(
            "Built distance field for goal cell %s (%d reachable cells)",
            goal,
            int(np.isfinite(dist).sum()),
        )
        return dist

    def _descend(self, dist: np.ndarray, start: Cell, goal: Cell) -> List[Cell]:
        """Follow the distance field downhill from start to goal."""
        path = [start]
        current = start
        # Every step strictly decreases the field, so this cannot loop
        while current != goal:
            neighbors = self.obstacle_map.get_neighbors(*current, diagonal=self.config.diagonal_movement)
            current = min(neighbors, key=lambda c: dist[c[1], c[0]])
            path.append(current)
        return path

    def _smooth_path(self, path: List[Cell]) -> List[Cell]:
        """
        Smooth path by removing unnecessary waypoints.

        From each kept waypoint, jump to the farthest later waypoint that is
        still in line of sight.
        """
        if len(path) <= 2:
            return path

        smoothed = [path[0]]
        current_idx = 0

        while current_idx < len(path) - 1:
            farthest_visible = current_idx + 1
            for check_idx in range(len(path) - 1, current_idx + 1, -1):
                if self._has_line_of_sight(path[current_idx], path[check_idx]):
                    farthest_visible = check_idx
                    break

            smoothed.append(path[farthest_visible])
            current_idx = farthest_visible

        return smoothed

    def _has_line_of_sight(self, start: Cell, end: Cell) -> bool:
        """
        Check if there's clear line of sight between two grid positions.

        Uses Bresenham's line algorithm to check all cells along the line.
        """
        x0, z0 = start
        x1, z1 = end

        dx = abs(x1 - x0)
        dz = abs(z1 - z0)
        x_sign = 1 if x0 < x1 else -1
        z_sign = 1 if z0 < z1 else -1

        if dx == 0 and dz == 0:
            return not self.obstacle_map.is_blocked(x0, z0)

        if dx > dz:
            err = dx / 2
            z = z0
            for x in range(x0, x1 + x_sign, x_sign):
                if self.obstacle_map.is_blocked(x, z):
                    return False
                err -= dz
                if err < 0:
                    z += z_sign
                    err += dx
        else:
            err = dz / 2
            x = x0
            for z in range(z0, z1 + z_sign, z_sign):
                if self.obstacle_map.is_blocked(x, z):
                    return False
                err -= dx
                if err < 0:
                    x += x_sign
                    err += dz

        return True

    # ------------------------------------------------------------------
    # PathFinder interface
    # ------------------------------------------------------------------

    def _cell_of(self, position: np.ndarray) -> Cell:
        return self.obstacle_map.world_to_grid(position[0], position[2])

    def _cell_center(self, cell: Cell, y: float) -> np.ndarray:
        x, z = self.obstacle_map.grid_to_world(*cell)
        return np.array([x, y, z])

    def is_navigable(self, position: np.ndarray) -> bool:
        return self.obstacle_map.is_free(position[0], position[2])

    def geodesic_distance(self, start: np.ndarray, end: np.ndarray) -> float:
        start = np.asarray(start, dtype=np.float64)
        end = np.asarray(end, dtype=np.float64)
        if not (self.is_navigable(start) and self.is_navigable(end)):
            return float("inf")

        start_cell = self._cell_of(start)
        end_cell = self._cell_of(end)
        if self._has_line_of_sight(start_cell, end_cell):
            return float(np.linalg.norm(end - start))

        dist = self._distance_field(end_cell)
        cell_dist = dist[start_cell[1], start_cell[0]]
        if not np.isfinite(cell_dist):
            return float("inf")

        # Account for the offsets from the exact points to their cell centres
        start_offset = np.linalg.norm(start - self._cell_center(start_cell, start[1]))
        end_offset = np.linalg.norm(end - self._cell_center(end_cell, end[1]))
        return float(cell_dist + start_offset + end_offset)

    def find_path(self, path: ShortestPath) -> bool:
        start = np.asarray(path.requested_start, dtype=np.float64)
        end = np.asarray(path.requested_end, dtype=np.float64)
        path.clear_result()

        distance = self.geodesic_distance(start, end)
        if not np.isfinite(distance):
            return False

        start_cell = self._cell_of(start)
        end_cell = self._cell_of(end)
        cells = [start_cell]
        if not self._has_line_of_sight(start_cell, end_cell):
            cells = self._descend(self._distance_field(end_cell), start_cell, end_cell)
            if self.config.smooth_path:
                cells = self._smooth_path(cells)

        # Exact endpoints replace the first and last cell centres
        points = [start.copy()]
        points.extend(self._cell_center(c, start[1]) for c in cells[1:-1])
        points.append(end.copy())

        path.points = points
        path.geodesic_distance = distance
        return True

    def distance_to_closest_obstacle(self, position: np.ndarray, max_search_radius: float = 2.0) -> float:
        return self.obstacle_map.distance_to_closest_obstacle(position[0], position[2], max_search_radius)

    def try_step(self, start: np.ndarray, end: np.ndarray) -> np.ndarray:
        start = np.asarray(start, dtype=np.float64)
        end = np.asarray(end, dtype=np.float64)
        if not self.is_navigable(start):
            return start.copy()

        delta = end - start
        length = float(np.linalg.norm(delta[[0, 2]]))
        increment = self.obstacle_map.resolution * self.config.step_resolution
        num_steps = max(1, int(np.ceil(length / increment)))

        reached = start.copy()
        for i in range(1, num_steps + 1):
            candidate = start + delta * (i / num_steps)
            if not self.is_navigable(candidate):
                break
            reached = candidate
        return reached

    def sample_navigable_point(self, rng: np.random.Generator, y: float = 0.0, max_tries: int = 1000) -> np.ndarray:
        """Uniformly sample a free floor position."""
        for _ in range(max_tries):
            x, z = rng.uniform(0.0, self.obstacle_map.world_size, size=2)
            point = np.array([x, y, z])
            if self.is_navigable(point):
                return point
        raise RuntimeError(f"No navigable point found after {max_tries} samples")

    def cells_of(self, points: List[np.ndarray]) -> List[Cell]:
        """Grid cells for a list of world points (for visualization)."""
        return [self._cell_of(p) for p in points]

    def field_cache_info(self) -> Dict[str, int]:
        return {"cached_fields": len(self._fields), "map_version": self._fields_version}
