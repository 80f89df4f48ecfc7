"""
Navigation module: geodesic oracle + greedy action follower.

- base: Action codes, ShortestPath and the PathFinder interface
- obstacle_map / pathfinding: occupancy-grid PathFinder implementation
- sandbox: scratch-node simulation of candidate moves
- thrashing: LEFT/RIGHT oscillation detection
- greedy_follower: GreedyGeodesicFollower decision engine

Example usage:
    from src.navigation import (
        GreedyFollowerConfig, GreedyGeodesicFollower, GridPathFinder, ObstacleMap,
    )
    from src.agent import make_move_fns

    obstacle_map = ObstacleMap(world_size=10.0)
    obstacle_map.build_from_layout(layout)
    pathfinder = GridPathFinder(obstacle_map)

    config = GreedyFollowerConfig(forward_amount=0.25, turn_amount=np.radians(10))
    follower = GreedyGeodesicFollower(
        pathfinder, *make_move_fns(pathfinder, config.forward_amount, config.turn_amount), config=config
    )
    actions = follower.find_path(pose, goal)
"""

from .base import (
    Action,
    MOVEMENT_ACTIONS,
    PathFinder,
    ShortestPath,
)

from .obstacle_map import (
    ObstacleMap,
    ObstacleMapConfig,
)

from .pathfinding import (
    GridPathFinder,
    PathfindingConfig,
)

from .sandbox import (
    Candidate,
    GeodesicOracle,
    MoveFn,
    SimulationSandbox,
)

from .thrashing import ThrashingDetector

from .greedy_follower import (
    GreedyFollowerConfig,
    GreedyGeodesicFollower,
)

__all__ = [
    # Base
    "Action",
    "MOVEMENT_ACTIONS",
    "PathFinder",
    "ShortestPath",
    # Obstacle map
    "ObstacleMap",
    "ObstacleMapConfig",
    # Pathfinding
    "GridPathFinder",
    "PathfindingConfig",
    # Simulation
    "Candidate",
    "GeodesicOracle",
    "MoveFn",
    "SimulationSandbox",
    # Thrashing
    "ThrashingDetector",
    # Follower
    "GreedyFollowerConfig",
    "GreedyGeodesicFollower",
]
