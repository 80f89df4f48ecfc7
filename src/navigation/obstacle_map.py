"""
Grid-based occupancy map of the floor plane.

Converts obstacles at continuous (x, z) floor positions into a discrete grid
that the planner can search and that answers clearance queries. The world is Y-up, so
the map covers the x/z plane over [0, world_size) on both axes.
"""
from dataclasses import dataclass
from typing import Dict, Any, List, Tuple, Optional
import numpy as np


@dataclass
class ObstacleMapConfig:
    """Configuration for obstacle map generation."""
    resolution: float = 0.1  # World units per grid cell
    padding: float = 0.1  # Extra padding around obstacles (agent radius)

    # If True, mark cells near world edges as blocked
    block_edges: bool = True
    edge_margin: float = 0.1


class ObstacleMap:
    """
    Occupancy grid: each cell is either passable (0) or blocked (1).

    Grid index order is [gz, gx] so rows run along the z axis.
    """

    def __init__(
        self,
        world_size: float,
        config: Optional[ObstacleMapConfig] = None,
    ):
        self.config = config or ObstacleMapConfig()
        self.world_size = world_size
        self.resolution = self.config.resolution

        self.grid_size = int(np.ceil(world_size / self.resolution))
        self.grid = np.zeros((self.grid_size, self.grid_size), dtype=np.uint8)

        # Bumped on every edit so planners can drop cached distance fields
        self.version = 0
        # World-space centres of blocked cells, rebuilt lazily after edits
        self._blocked_centers: Optional[np.ndarray] = None

    def _touch(self) -> None:
        self.version += 1
        self._blocked_centers = None

    def world_to_grid(self, x: float, z: float) -> Tuple[int, int]:
        """Convert floor coordinates to grid coordinates (clamped to the grid)."""
        gx = int(np.floor(x / self.resolution))
        gz = int(np.floor(z / self.resolution))
        gx = max(0, min(self.grid_size - 1, gx))
        gz = max(0, min(self.grid_size - 1, gz))
        return gx, gz

    def grid_to_world(self, gx: int, gz: int) -> Tuple[float, float]:
        """Convert grid coordinates to floor coordinates (cell center)."""
        x = (gx + 0.5) * self.resolution
        z = (gz + 0.5) * self.resolution
        return x, z

    def in_bounds(self, x: float, z: float) -> bool:
        return 0.0 <= x < self.world_size and 0.0 <= z < self.world_size

    def is_blocked(self, gx: int, gz: int) -> bool:
        if gx < 0 or gx >= self.grid_size or gz < 0 or gz >= self.grid_size:
            return True  # Out of bounds is blocked
        return self.grid[gz, gx] == 1

    def is_passable(self, gx: int, gz: int) -> bool:
        return not self.is_blocked(gx, gz)

    def is_free(self, x: float, z: float) -> bool:
        """Check a continuous floor position."""
        if not self.in_bounds(x, z):
            return False
        return self.is_passable(*self.world_to_grid(x, z))

    def add_circular_obstacle(self, x: float, z: float, radius: float) -> None:
        """Mark cells whose centre lies within radius + padding of (x, z)."""
        effective_radius = radius + self.config.padding

        center_gx, center_gz = self.world_to_grid(x, z)
        grid_radius = int(np.ceil(effective_radius / self.resolution)) + 1

        for dx in range(-grid_radius, grid_radius + 1):
            for dz in range(-grid_radius, grid_radius + 1):
                gx, gz = center_gx + dx, center_gz + dz
                if gx < 0 or gx >= self.grid_size or gz < 0 or gz >= self.grid_size:
                    continue

                cell_x, cell_z = self.grid_to_world(gx, gz)
                dist = np.sqrt((cell_x - x) ** 2 + (cell_z - z) ** 2)
                if dist <= effective_radius:
                    self.grid[gz, gx] = 1

        self._touch()

    def add_rectangular_obstacle(
        self, x: float, z: float, width: float, depth: float
    ) -> None:
        """
        Mark cells occupied by an axis-aligned box.

        Args:
            x, z: Floor position of the box centre
            width, depth: Extent along x and z
        """
        padding = self.config.padding
        half_w = width / 2 + padding
        half_d = depth / 2 + padding

        min_gx, min_gz = self.world_to_grid(x - half_w, z - half_d)
        max_gx, max_gz = self.world_to_grid(x + half_w, z + half_d)

        self.grid[min_gz:max_gz + 1, min_gx:max_gx + 1] = 1
        self._touch()

    def mark_edges_blocked(self) -> None:
        """Mark cells near world edges as blocked."""
        margin_cells = max(1, int(np.ceil(self.config.edge_margin / self.resolution)))

        self.grid[:margin_cells, :] = 1
        self.grid[-margin_cells:, :] = 1
        self.grid[:, :margin_cells] = 1
        self.grid[:, -margin_cells:] = 1
        self._touch()

    def build_from_layout(self, layout: Dict[str, Any]) -> None:
        """
        Rebuild the grid from a layout description.

        Layout format:
            {"obstacles": [
                {"shape": "circle", "x": 2.0, "z": 3.0, "radius": 0.5},
                {"shape": "box", "x": 5.0, "z": 1.0, "width": 2.0, "depth": 0.2},
            ]}
        """
        self.grid.fill(0)

        for obstacle in layout.get("obstacles", []):
            shape = obstacle.get("shape", "circle")
            if shape == "circle":
                self.add_circular_obstacle(obstacle["x"], obstacle["z"], obstacle["radius"])
            elif shape == "box":
                self.add_rectangular_obstacle(
                    obstacle["x"], obstacle["z"], obstacle["width"], obstacle["depth"]
                )
            else:
                raise ValueError(f"Unknown obstacle shape: {shape!r}")

        if self.config.block_edges:
            self.mark_edges_blocked()

        self._touch()

    def distance_to_closest_obstacle(self, x: float, z: float, max_search_radius: float) -> float:
        """
        Distance from (x, z) to the nearest blocked cell boundary.

        Cells are treated as discs of radius resolution/2 around their centres;
        the result is capped at max_search_radius.
        """
        if not self.is_free(x, z):
            return 0.0

        if self._blocked_centers is None:
            gz, gx = np.nonzero(self.grid)
            self._blocked_centers = np.stack(
                [(gx + 0.5) * self.resolution, (gz + 0.5) * self.resolution], axis=1
            )

        if len(self._blocked_centers) == 0:
            return float(max_search_radius)

        offsets = self._blocked_centers - np.array([x, z])
        nearest = float(np.min(np.linalg.norm(offsets, axis=1))) - self.resolution / 2
        return float(min(max(nearest, 0.0), max_search_radius))

    def get_neighbors(self, gx: int, gz: int, diagonal: bool = True) -> List[Tuple[int, int]]:
        """
        Get passable neighbor cells.

        Args:
            gx, gz: Current grid position
            diagonal: If True, include diagonal neighbors (8-connected)

        Returns:
            List of (gx, gz) tuples for passable neighbors
        """
        neighbors = []

        directions = [(0, 1), (0, -1), (1, 0), (-1, 0)]
        if diagonal:
            directions += [(1, 1), (1, -1), (-1, 1), (-1, -1)]

        for dx, dz in directions:
            nx, nz = gx + dx, gz + dz

            if self.is_passable(nx, nz):
                # No cutting through corners
                if diagonal and dx != 0 and dz != 0:
                    if self.is_blocked(gx + dx, gz) or self.is_blocked(gx, gz + dz):
                        continue
                neighbors.append((nx, nz))

        return neighbors

    def to_ascii(
        self,
        path: Optional[List[Tuple[int, int]]] = None,
        marks: Optional[Dict[Tuple[int, int], str]] = None,
    ) -> str:
        """
        ASCII rendering, rows from high z to low z.

        Args:
            path: Optional list of (gx, gz) cells to draw as '*'
            marks: Optional single-character overrides per cell (e.g. 'A', 'G')
        """
        path_set = set(path) if path else set()
        marks = marks or {}
        lines = []

        for gz in range(self.grid_size - 1, -1, -1):
            row = ""
            for gx in range(self.grid_size):
                if (gx, gz) in marks:
                    row += marks[(gx, gz)]
                elif (gx, gz) in path_set:
                    row += "*"
                elif self.grid[gz, gx] == 1:
                    row += "#"
                else:
                    row += "."
            lines.append(row)

        return "\n".join(lines)

    def __repr__(self) -> str:
        blocked = int(np.sum(self.grid))
        total = self.grid_size * self.grid_size
        return (
            f"ObstacleMap(world_size={self.world_size}, "
            f"grid_size={self.grid_size}x{self.grid_size}, "
            f"blocked={blocked}/{total})"
        )
