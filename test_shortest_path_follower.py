"""
Test the agent, the agent-facing follower wrapper and the point-nav environment.

Run from project root:
    python test_shortest_path_follower.py
    pytest test_shortest_path_follower.py
"""
import numpy as np
import pytest

from src.agent import (
    ActionSpec,
    ActuationSpec,
    Agent,
    AgentConfig,
    AgentState,
    GreedyFollowerError,
    ShortestPathFollower,
)
from src.navigation import Action, GridPathFinder, ObstacleMap
from src.training import PointNavConfig, PointNavEnv
from src.world import quat_from_heading

RING_LAYOUT = {
    "obstacles": [
        {"shape": "box", "x": 4.5, "z": 2.2, "width": 1.6, "depth": 0.2},
        {"shape": "box", "x": 4.5, "z": 0.8, "width": 1.6, "depth": 0.2},
        {"shape": "box", "x": 3.8, "z": 1.5, "width": 0.2, "depth": 1.6},
        {"shape": "box", "x": 5.2, "z": 1.5, "width": 0.2, "depth": 1.6},
    ]
}


def make_agent(layout=None, position=(3.0, 0.0, 3.0), heading=0.0, config=None):
    obstacle_map = ObstacleMap(6.0)
    obstacle_map.build_from_layout(layout or {"obstacles": []})
    pathfinder = GridPathFinder(obstacle_map)
    agent = Agent(pathfinder, config)
    agent.set_state(AgentState(position=np.array(position), rotation=quat_from_heading(heading)))
    return pathfinder, agent


# ----------------------------------------------------------------------
# Agent
# ----------------------------------------------------------------------

def test_agent_actions():
    print("=== Agent ===")
    _, agent = make_agent()

    assert not agent.act("move_forward")
    assert np.allclose(agent.state.position, [3.0, 0.0, 2.75])

    assert not agent.act("turn_left")
    assert agent.state.pose().heading == pytest.approx(np.radians(10.0))
    assert not agent.act("turn_right")
    assert not agent.act("turn_right")
    assert agent.state.pose().heading == pytest.approx(np.radians(-10.0))

    position = agent.state.position
    assert not agent.act("stop")
    assert np.array_equal(agent.state.position, position)

    with pytest.raises(ValueError):
        agent.act("jump")


def test_agent_collides_with_edge():
    pathfinder, agent = make_agent(position=(3.0, 0.0, 0.4))
    assert not agent.act("move_forward")
    assert agent.act("move_forward")  # Edge cells start below z=0.1
    print(f"Stopped at {np.round(agent.state.position, 3)}")
    assert pathfinder.is_navigable(agent.state.position)
    assert agent.state.position[2] < 0.15


def test_agent_rejects_unknown_control():
    config = AgentConfig(action_space={"fly": ActionSpec("fly", ActuationSpec(1.0))})
    obstacle_map = ObstacleMap(6.0)
    with pytest.raises(ValueError):
        Agent(GridPathFinder(obstacle_map), config)


# ----------------------------------------------------------------------
# ShortestPathFollower
# ----------------------------------------------------------------------

def test_follower_defaults_from_action_space():
    pathfinder, agent = make_agent()
    follower = ShortestPathFollower(pathfinder, agent)

    assert follower.goal_radius == pytest.approx(0.75 * 0.25)
    assert follower.config.forward_amount == pytest.approx(0.25)
    assert follower.config.turn_amount == pytest.approx(np.radians(10.0))
    assert follower.action_mapping == {
        Action.STOP: None,
        Action.FORWARD: "move_forward",
        Action.LEFT: "turn_left",
        Action.RIGHT: "turn_right",
    }


def test_find_path_returns_action_keys():
    print("\n=== Wrapper find_path ===")
    pathfinder, agent = make_agent()
    follower = ShortestPathFollower(pathfinder, agent, stop_key="stop")
    start = agent.state.position

    keys = follower.find_path(np.array([3.0, 0.0, 1.0]))
    print(f"Plan: {keys}")
    assert keys == ["move_forward"] * 8 + ["stop"]
    # Planning never moves the agent and leaves no history behind
    assert np.array_equal(agent.state.position, start)
    assert follower.impl.history == []

    # Without a stop key the plan ends with None
    follower = ShortestPathFollower(pathfinder, agent)
    assert follower.find_path(np.array([3.0, 0.0, 1.0]))[-1] is None


def test_next_action_drives_agent_to_goal():
    pathfinder, agent = make_agent(heading=np.pi / 2)
    follower = ShortestPathFollower(pathfinder, agent, stop_key="stop")
    goal = np.array([4.5, 0.0, 4.0])

    for _ in range(100):
        key = follower.next_action_along(goal)
        if key == "stop":
            break
        agent.act(key)
    else:
        pytest.fail("Follower never stopped")

    distance = pathfinder.geodesic_distance(agent.state.position, goal)
    print(f"\nStopped {distance:.3f} from the goal")
    assert distance <= follower.goal_radius


def test_unreachable_goal_raises():
    pathfinder, agent = make_agent(layout=RING_LAYOUT, position=(1.5, 0.0, 1.5))
    follower = ShortestPathFollower(pathfinder, agent)
    goal = np.array([4.5, 0.0, 1.5])

    with pytest.raises(GreedyFollowerError):
        follower.next_action_along(goal)
    with pytest.raises(GreedyFollowerError):
        follower.find_path(goal)


def test_goal_change_resets_history():
    pathfinder, agent = make_agent()
    follower = ShortestPathFollower(pathfinder, agent)

    goal = np.array([1.0, 0.0, 1.0])
    for _ in range(3):
        agent.act(follower.next_action_along(goal))
    assert len(follower.impl.history) == 3

    follower.next_action_along(goal)
    assert len(follower.impl.history) == 4

    follower.next_action_along(np.array([5.0, 0.0, 5.0]))
    assert len(follower.impl.history) == 1


def test_mismatched_turns_rejected():
    space = {
        "move_forward": ActionSpec("move_forward", ActuationSpec(0.25)),
        "turn_left": ActionSpec("turn_left", ActuationSpec(10.0)),
        "turn_right": ActionSpec("turn_right", ActuationSpec(15.0)),
        "stop": ActionSpec("stop"),
    }
    pathfinder, agent = make_agent(config=AgentConfig(action_space=space))
    with pytest.raises(ValueError):
        ShortestPathFollower(pathfinder, agent)


# ----------------------------------------------------------------------
# PointNavEnv
# ----------------------------------------------------------------------

def test_env_requires_reset():
    env = PointNavEnv()
    with pytest.raises(RuntimeError):
        env.step(1)
    with pytest.raises(RuntimeError):
        env.expert_action()


def test_env_expert_reaches_goal():
    print("\n=== PointNavEnv Expert ===")
    env = PointNavEnv(render_mode="ansi")
    obs, info = env.reset(options={
        "start": np.array([2.0, 0.0, 5.0]),
        "goal": np.array([2.0, 0.0, 2.0]),
        "heading": 0.0,
    })
    assert env.observation_space.contains(obs)
    assert obs[0] == pytest.approx(3.0, abs=1e-5)
    assert obs[1] == pytest.approx(1.0, abs=1e-5)  # Facing the goal
    assert info["geodesic_distance"] == pytest.approx(3.0)

    text = env.render()
    assert "A" in text and "G" in text

    actions = []
    total_reward = 0.0
    terminated = truncated = False
    while not (terminated or truncated):
        action = env.expert_action()
        actions.append(env.ACTION_KEYS[action])
        obs, reward, terminated, truncated, info = env.step(action)
        total_reward += reward

    print(f"Actions: {actions}")
    print(f"Reward: {total_reward:.2f}")
    assert actions == ["move_forward"] * 12 + ["stop"]
    assert terminated and info["success"]
    assert total_reward > env.config.success_reward

    env.close()


def test_env_stop_far_from_goal_fails():
    env = PointNavEnv()
    env.reset(options={"start": np.array([2.0, 0.0, 5.0]), "goal": np.array([2.0, 0.0, 2.0]), "heading": 0.0})
    _, _, terminated, truncated, info = env.step(0)
    assert terminated and not truncated
    assert not info["success"]


def test_env_truncates():
    env = PointNavEnv(PointNavConfig(max_episode_steps=3))
    env.reset(seed=0)
    for _ in range(2):
        _, _, terminated, truncated, _ = env.step(2)
        assert not (terminated or truncated)
    _, _, terminated, truncated, _ = env.step(2)
    assert truncated and not terminated


def test_env_seeded_reset():
    a = PointNavEnv()
    b = PointNavEnv()
    _, info_a = a.reset(seed=7)
    _, info_b = b.reset(seed=7)
    assert np.array_equal(info_a["start"], info_b["start"])
    assert np.array_equal(info_a["goal"], info_b["goal"])
    assert np.isfinite(info_a["geodesic_distance"])
    assert info_a["geodesic_distance"] >= a.config.min_start_goal_distance
    assert a.pathfinder.is_navigable(info_a["start"])
    assert a.pathfinder.is_navigable(info_a["goal"])


if __name__ == "__main__":
    test_agent_actions()
    test_agent_collides_with_edge()
    test_agent_rejects_unknown_control()
    test_follower_defaults_from_action_space()
    test_find_path_returns_action_keys()
    test_next_action_drives_agent_to_goal()
    test_unreachable_goal_raises()
    test_goal_change_resets_history()
    test_mismatched_turns_rejected()
    test_env_requires_reset()
    test_env_expert_reaches_goal()
    test_env_stop_far_from_goal_fails()
    test_env_truncates()
    test_env_seeded_reset()
    print("\nAll follower/env tests passed!")
