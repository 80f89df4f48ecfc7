"""
Test the occupancy grid and the grid geodesic oracle.

Run from project root:
    python test_pathfinding.py
    pytest test_pathfinding.py
"""
import numpy as np
import pytest

from src.navigation import (
    GridPathFinder,
    ObstacleMap,
    ObstacleMapConfig,
    ShortestPath,
)

# A wall at x=3 running from the bottom edge up to z=4.5; the gap is above it
WALL_LAYOUT = {
    "obstacles": [
        {"shape": "box", "x": 3.0, "z": 2.25, "width": 0.2, "depth": 4.5},
    ]
}

# Four walls boxing in the floor around (4.5, 1.5)
RING_LAYOUT = {
    "obstacles": [
        {"shape": "box", "x": 4.5, "z": 2.2, "width": 1.6, "depth": 0.2},
        {"shape": "box", "x": 4.5, "z": 0.8, "width": 1.6, "depth": 0.2},
        {"shape": "box", "x": 3.8, "z": 1.5, "width": 0.2, "depth": 1.6},
        {"shape": "box", "x": 5.2, "z": 1.5, "width": 0.2, "depth": 1.6},
    ]
}


def make_pathfinder(layout, world_size=6.0):
    obstacle_map = ObstacleMap(world_size)
    obstacle_map.build_from_layout(layout)
    return GridPathFinder(obstacle_map)


def polyline_length(points):
    return sum(float(np.linalg.norm(b - a)) for a, b in zip(points, points[1:]))


def test_obstacle_map_basics():
    print("=== ObstacleMap ===")
    obstacle_map = ObstacleMap(6.0)
    obstacle_map.build_from_layout(WALL_LAYOUT)
    print(obstacle_map)

    assert obstacle_map.grid_size == 60
    assert obstacle_map.world_to_grid(0.15, 0.25) == (1, 2)
    assert obstacle_map.world_to_grid(-5.0, 100.0) == (0, 59)
    assert obstacle_map.grid_to_world(1, 2) == pytest.approx((0.15, 0.25))

    assert not obstacle_map.is_free(3.0, 1.0)   # Wall
    assert not obstacle_map.is_free(0.05, 3.0)  # Edge margin
    assert not obstacle_map.is_free(-1.0, 3.0)  # Outside the map
    assert obstacle_map.is_free(1.5, 1.5)
    assert obstacle_map.is_free(3.0, 5.2)       # Gap above the wall

    ascii_map = obstacle_map.to_ascii(marks={(15, 15): "A"})
    assert "#" in ascii_map and "A" in ascii_map
    assert len(ascii_map.splitlines()) == 60


def test_layout_rejects_unknown_shape():
    obstacle_map = ObstacleMap(6.0)
    with pytest.raises(ValueError):
        obstacle_map.build_from_layout({"obstacles": [{"shape": "cone", "x": 1.0, "z": 1.0}]})


def test_edits_bump_version():
    obstacle_map = ObstacleMap(6.0)
    version = obstacle_map.version
    obstacle_map.add_circular_obstacle(2.0, 2.0, 0.3)
    assert obstacle_map.version > version
    assert not obstacle_map.is_free(2.0, 2.0)


def test_distance_to_closest_obstacle():
    print("\n=== Clearance ===")
    open_map = ObstacleMap(6.0, ObstacleMapConfig(block_edges=False))
    open_map.build_from_layout({"obstacles": []})
    assert open_map.distance_to_closest_obstacle(3.0, 3.0, 2.0) == 2.0

    walled = ObstacleMap(6.0)
    walled.build_from_layout({"obstacles": []})
    # Edge cells end at x=0.1
    clearance = walled.distance_to_closest_obstacle(0.5, 3.05, 2.0)
    print(f"Clearance 0.4 from the edge: {clearance:.3f}")
    assert clearance == pytest.approx(0.4, abs=1e-9)
    assert walled.distance_to_closest_obstacle(3.0, 3.0, 1.0) == 1.0
    assert walled.distance_to_closest_obstacle(0.05, 3.0, 1.0) == 0.0


def test_geodesic_with_line_of_sight():
    pathfinder = make_pathfinder(WALL_LAYOUT)
    start = np.array([1.0, 0.0, 1.0])
    goal = np.array([2.0, 0.0, 2.0])

    assert pathfinder.geodesic_distance(start, goal) == pytest.approx(np.sqrt(2.0))

    path = ShortestPath(requested_start=start, requested_end=goal)
    assert pathfinder.find_path(path)
    assert len(path.points) == 2
    assert np.allclose(path.points[0], start)
    assert np.allclose(path.points[-1], goal)


def test_geodesic_around_wall():
    print("\n=== Geodesic Around Wall ===")
    pathfinder = make_pathfinder(WALL_LAYOUT)
    start = np.array([1.5, 0.0, 1.5])
    goal = np.array([4.5, 0.0, 1.5])

    path = ShortestPath(requested_start=start, requested_end=goal)
    assert pathfinder.find_path(path)
    print(f"Euclidean: {np.linalg.norm(goal - start):.2f}  Geodesic: {path.geodesic_distance:.2f}")
    print(f"Waypoints: {[np.round(p, 2).tolist() for p in path.points]}")

    assert np.isfinite(path.geodesic_distance)
    assert path.geodesic_distance > 6.0
    assert len(path.points) > 2
    assert np.allclose(path.points[0], start)
    assert np.allclose(path.points[-1], goal)
    assert all(pathfinder.is_navigable(p) for p in path.points)
    # Waypoints climb over the top of the wall
    assert max(p[2] for p in path.points) > 4.5
    # Smoothed waypoints never take longer than the reported distance
    assert polyline_length(path.points) <= path.geodesic_distance + 1e-6

    # Distance is symmetric up to grid discretization
    back = pathfinder.geodesic_distance(goal, start)
    assert back == pytest.approx(path.geodesic_distance, abs=0.2)


def test_no_path_is_infinite():
    pathfinder = make_pathfinder(RING_LAYOUT)
    start = np.array([1.5, 0.0, 1.5])
    goal = np.array([4.5, 0.0, 1.5])
    assert pathfinder.is_navigable(goal)

    path = ShortestPath(requested_start=start, requested_end=goal)
    assert not pathfinder.find_path(path)
    assert not path.found
    assert path.points == []
    assert pathfinder.geodesic_distance(start, goal) == float("inf")

    # Goal inside an obstacle
    assert pathfinder.geodesic_distance(start, np.array([3.8, 0.0, 1.5])) == float("inf")


def test_try_step_stops_at_obstacles():
    pathfinder = make_pathfinder(WALL_LAYOUT)
    start = np.array([2.0, 0.0, 1.5])

    reached = pathfinder.try_step(start, np.array([4.0, 0.0, 1.5]))
    print(f"\nStopped at {np.round(reached, 3)}")
    assert pathfinder.is_navigable(reached)
    assert 2.5 < reached[0] < 2.8
    assert reached[2] == pytest.approx(1.5)

    end = np.array([2.0, 0.0, 1.25])
    assert np.allclose(pathfinder.try_step(start, end), end)


def test_distance_field_invalidated_by_edits():
    pathfinder = make_pathfinder(WALL_LAYOUT)
    start = np.array([1.5, 0.0, 1.5])
    goal = np.array([4.5, 0.0, 1.5])

    before = pathfinder.geodesic_distance(start, goal)
    assert np.isfinite(before)
    assert pathfinder.field_cache_info()["cached_fields"] == 1

    # Plug the gap above the wall
    pathfinder.obstacle_map.add_circular_obstacle(3.0, 5.2, 0.6)
    after = pathfinder.geodesic_distance(start, goal)
    print(f"Before plugging the gap: {before:.2f}, after: {after}")
    assert after == float("inf")
    assert pathfinder.field_cache_info()["map_version"] == pathfinder.obstacle_map.version


def test_sample_navigable_point():
    pathfinder = make_pathfinder(WALL_LAYOUT)
    rng = np.random.default_rng(0)
    for _ in range(20):
        assert pathfinder.is_navigable(pathfinder.sample_navigable_point(rng))


if __name__ == "__main__":
    test_obstacle_map_basics()
    test_layout_rejects_unknown_shape()
    test_edits_bump_version()
    test_distance_to_closest_obstacle()
    test_geodesic_with_line_of_sight()
    test_geodesic_around_wall()
    test_no_path_is_infinite()
    test_try_step_stops_at_obstacles()
    test_distance_field_invalidated_by_edits()
    test_sample_navigable_point()
    print("\nAll pathfinding tests passed!")
