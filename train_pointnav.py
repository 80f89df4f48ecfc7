#!/usr/bin/env python3
"""
Train a PPO policy on PointNavEnv and compare it with the greedy follower.

The follower is the reference: after training, both are rolled out on the
same seeded episodes and their success rates and action agreement are
reported.

Run from project root:
    python train_pointnav.py --timesteps 200000
    python train_pointnav.py --eval-only --model models/pointnav/final_model
"""
import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict

from stable_baselines3 import PPO
from stable_baselines3.common.callbacks import BaseCallback, EvalCallback
from stable_baselines3.common.monitor import Monitor
from stable_baselines3.common.vec_env import DummyVecEnv

from src.training import PointNavConfig, PointNavEnv


class SuccessRateCallback(BaseCallback):
    """Tracks the success rate over a sliding window of finished episodes."""

    def __init__(self, window_size: int = 200, verbose: int = 0):
        super().__init__(verbose)
        self.window_size = window_size
        self._recent_successes = []
        self._episode_count = 0

    def _on_step(self) -> bool:
        dones = self.locals.get("dones", [])
        infos = self.locals.get("infos", [])

        for done, info in zip(dones, infos):
            if done:
                self._episode_count += 1
                self._recent_successes.append(bool(info.get("success", False)))
                if len(self._recent_successes) > self.window_size:
                    self._recent_successes.pop(0)

        if self._recent_successes:
            self.logger.record("rollout/success_rate", self.success_rate)
        return True

    @property
    def success_rate(self) -> float:
        if not self._recent_successes:
            return 0.0
        return sum(self._recent_successes) / len(self._recent_successes)


def make_env(config: PointNavConfig, log_dir: Path, index: int):
    """Factory function to create a monitored PointNavEnv."""
    def _init():
        return Monitor(PointNavEnv(config), str(log_dir / f"monitor_{index}"))
    return _init


def compare_with_expert(model: PPO, config: PointNavConfig, episodes: int, seed: int) -> Dict[str, float]:
    """
    Roll out the policy and the greedy follower on the same episodes.

    Returns:
        Success rates of both and how often the policy picked the expert's action
    """
    env = PointNavEnv(config)
    policy_successes = 0
    expert_successes = 0
    agreements = 0
    decisions = 0

    for episode in range(episodes):
        # Policy rollout, scoring agreement against the expert at every state
        obs, _ = env.reset(seed=seed + episode)
        terminated = truncated = False
        info = {}
        while not (terminated or truncated):
            action, _ = model.predict(obs, deterministic=True)
            agreements += int(int(action) == env.expert_action())
            decisions += 1
            obs, _, terminated, truncated, info = env.step(int(action))
        policy_successes += int(info.get("success", False))

        # Expert rollout from the identical start
        env.reset(seed=seed + episode)
        terminated = truncated = False
        while not (terminated or truncated):
            _, _, terminated, truncated, info = env.step(env.expert_action())
        expert_successes += int(info.get("success", False))

    env.close()
    return {
        "policy_success_rate": policy_successes / episodes,
        "expert_success_rate": expert_successes / episodes,
        "action_agreement": agreements / max(1, decisions),
    }


def main():
    parser = argparse.ArgumentParser(description="Train PPO on point-goal navigation")
    parser.add_argument("--timesteps", type=int, default=200_000,
                        help="Total training timesteps")
    parser.add_argument("--n-envs", type=int, default=4,
                        help="Number of parallel environments")
    parser.add_argument("--eval-freq", type=int, default=20_000,
                        help="Evaluation frequency")
    parser.add_argument("--eval-episodes", type=int, default=20,
                        help="Episodes for the expert comparison")
    parser.add_argument("--log-dir", type=str, default="logs/pointnav",
                        help="Log directory")
    parser.add_argument("--model-dir", type=str, default="models/pointnav",
                        help="Model save directory")
    parser.add_argument("--lr", type=float, default=3e-4,
                        help="Learning rate")
    parser.add_argument("--ent-coef", type=float, default=0.01,
                        help="Entropy coefficient (exploration)")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--eval-only", action="store_true",
                        help="Skip training and evaluate --model")
    parser.add_argument("--model", type=str, default=None,
                        help="Saved model to load")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )

    log_dir = Path(args.log_dir)
    model_dir = Path(args.model_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    model_dir.mkdir(parents=True, exist_ok=True)

    config = PointNavConfig()

    if args.eval_only:
        if args.model is None:
            parser.error("--eval-only needs --model")
        model = PPO.load(args.model)
    else:
        print("=" * 60)
        print("POINT-GOAL NAVIGATION TRAINING")
        print("=" * 60)
        print(f"Timesteps: {args.timesteps:,}")
        print(f"Parallel envs: {args.n_envs}")
        print(f"Learning rate: {args.lr}")
        print(f"Entropy coef: {args.ent_coef}")
        print("=" * 60)

        vec_env = DummyVecEnv([make_env(config, log_dir, i) for i in range(args.n_envs)])
        vec_env.seed(args.seed)
        eval_env = Monitor(PointNavEnv(config), str(log_dir / "eval"))

        model = PPO(
            "MlpPolicy",
            vec_env,
            learning_rate=args.lr,
            n_steps=2048,
            batch_size=64,
            n_epochs=10,
            gamma=0.99,
            gae_lambda=0.95,
            ent_coef=args.ent_coef,
            policy_kwargs=dict(net_arch=dict(pi=[64, 64], vf=[64, 64])),
            seed=args.seed,
            verbose=1,
        )

        success_callback = SuccessRateCallback()
        eval_callback = EvalCallback(
            eval_env,
            best_model_save_path=str(model_dir / "best"),
            log_path=str(log_dir),
            eval_freq=max(1, args.eval_freq // args.n_envs),
            n_eval_episodes=10,
            deterministic=True,
            verbose=1,
        )

        print("\nStarting training...\n")
        start_time = datetime.now()
        try:
            model.learn(
                total_timesteps=args.timesteps,
                callback=[success_callback, eval_callback],
            )
        except KeyboardInterrupt:
            print("\nTraining interrupted by user")

        print(f"\nDuration: {datetime.now() - start_time}")
        print(f"Recent success rate: {success_callback.success_rate:.1%}")

        final_path = model_dir / "final_model"
        model.save(str(final_path))
        print(f"Final model saved to {final_path}")

        vec_env.close()
        eval_env.close()

    print("\nComparing with the greedy follower...")
    results = compare_with_expert(model, config, args.eval_episodes, seed=10_000)
    print("=" * 60)
    print(f"Policy success rate: {results['policy_success_rate']:.1%}")
    print(f"Expert success rate: {results['expert_success_rate']:.1%}")
    print(f"Action agreement:    {results['action_agreement']:.1%}")
    print("=" * 60)


if __name__ == "__main__":
    main()
