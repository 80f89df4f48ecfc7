"""
Demo script for the greedy geodesic follower.

Plans a full action sequence with find_path(), then drives a live agent
with next_action_along() step by step and prints the route on an ASCII map.

Run from project root:
    python demo_follower.py
    python demo_follower.py --seed 3 --verbose
"""
import argparse
import logging
from collections import Counter

import numpy as np

from src.agent import GreedyFollowerError
from src.training import PointNavEnv


def main():
    parser = argparse.ArgumentParser(description="Greedy geodesic follower demo")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--episodes", type=int, default=3)
    parser.add_argument("--verbose", action="store_true", help="Log every decision")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )

    env = PointNavEnv(render_mode="ansi")
    print("=== Greedy Follower Demo ===")
    print(env.obstacle_map)

    successes = 0
    for episode in range(args.episodes):
        obs, info = env.reset(seed=args.seed + episode)
        print("\n" + "=" * 60)
        print(f"Episode {episode} | start={np.round(info['start'], 2)} goal={np.round(info['goal'], 2)}")
        print(f"Geodesic distance: {info['geodesic_distance']:.2f}")
        print("=" * 60)

        # Plan the whole route on scratch nodes (the agent does not move)
        try:
            plan = env.follower.find_path(env.goal)
        except GreedyFollowerError as e:
            print(f"Planning failed: {e}")
            continue
        print(f"Planned {len(plan)} actions: {dict(Counter(plan))}")

        # Execute step by step against the live agent
        total_reward = 0.0
        terminated = truncated = False
        while not (terminated or truncated):
            action = env.expert_action()
            obs, reward, terminated, truncated, info = env.step(action)
            total_reward += reward

        print(env.render())
        print(f"Steps: {info['step']} | Success: {info['success']} | Reward: {total_reward:.2f}")
        successes += int(info["success"])

    print(f"\nSuccess rate: {successes}/{args.episodes}")
    env.close()


if __name__ == "__main__":
    main()
