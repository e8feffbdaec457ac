"""
Episode Runner for Planet Flap
==============================
Roll out episodes of the PlanetFlap environment with a scripted policy
and print per-episode statistics.

Policies:
- random: uniform samples from the action space
- autopilot: the gate-chasing AutopilotPolicy
- idle: never flap, never turn

Usage:
    planetflap-run --episodes 20 --stage simple_pipes --policy autopilot
    python -m planetflap.training.run_episodes --episodes 5
"""

import argparse
import logging
import numpy as np

from .planet_env import PlanetFlapEnv, PlanetFlapEnvConfig
from .controls import AutopilotPolicy
from .curriculum import TrainingStage, FULL_GAME_REWARD_VARIANTS

logger = logging.getLogger(__name__)

POLICIES = ('random', 'autopilot', 'idle')


def _make_policy(name: str, env: PlanetFlapEnv):
    if name == 'random':
        return lambda obs: env.action_space.sample()
    if name == 'autopilot':
        return AutopilotPolicy().act
    if name == 'idle':
        return lambda obs: np.array([0, 1], dtype=np.int64)
    raise ValueError(f"Unknown policy: {name}. Available: {', '.join(POLICIES)}")


def run_episodes(
    episodes: int = 10,
    stage: str = "survival",
    policy: str = "autopilot",
    max_steps: int = 3000,
    seed: int = None,
    log_interval: int = 1,
    extended_gate_slots: int = 0,
    full_game_reward: str = "gate_alignment",
    config_path: str = None,
    advance_every: int = 0
):
    """
    Run episodes and report statistics.

    Args:
        episodes: Number of episodes
        stage: Starting curriculum stage
        policy: Scripted policy name
        max_steps: Step limit per episode (truncation)
        seed: Seed for the first reset
        log_interval: Print stats every N episodes
        advance_every: Advance the curriculum every N episodes (0 = never)

    Returns:
        List of episode rewards
    """
    env = PlanetFlapEnv(PlanetFlapEnvConfig(
        stage=stage,
        max_episode_steps=max_steps,
        extended_gate_slots=extended_gate_slots,
        full_game_reward=full_game_reward,
        config_path=config_path
    ))
    env.action_space.seed(seed)
    act = _make_policy(policy, env)

    print("=" * 60)
    print("PLANET FLAP EPISODE RUNNER")
    print("=" * 60)
    print(f"Episodes: {episodes}")
    print(f"Policy: {policy}")
    print(f"Stage: {env.stage_description()}")
    print(f"Observation space: {env.observation_space.shape}")
    print(f"Action space: {env.action_space.nvec.tolist()}")
    print("=" * 60)

    all_rewards = []
    all_lengths = []
    all_scores = []
    deaths = 0

    for episode in range(1, episodes + 1):
        obs, info = env.reset(seed=seed if episode == 1 else None)
        episode_reward = 0.0
        step = 0

        done = False
        while not done:
            action = act(obs)
            obs, reward, terminated, truncated, info = env.step(action)
            done = terminated or truncated
            episode_reward += reward
            step += 1

        all_rewards.append(episode_reward)
        all_lengths.append(step)
        all_scores.append(info['score'])
        if not info['alive']:
            deaths += 1

        if episode % log_interval == 0:
            print(f"Episode {episode:5d} | "
                  f"Reward: {episode_reward:8.3f} | "
                  f"Length: {step:5d} | "
                  f"Score: {info['score']:3d} | "
                  f"End: {info.get('death_cause', 'timeout')}")

        if advance_every and episode % advance_every == 0 and env.stage != TrainingStage.FULL_GAME:
            env.next_training_stage()
            print(f"[*] {env.stage_description()}")

    print("=" * 60)
    print("RUN COMPLETE")
    print("=" * 60)
    print(f"Total episodes: {episodes}")
    print(f"Avg reward: {np.mean(all_rewards):.3f}")
    print(f"Avg length: {np.mean(all_lengths):.0f}")
    print(f"Avg score: {np.mean(all_scores):.2f}")
    print(f"Deaths: {deaths}/{episodes}")

    env.close()
    return all_rewards


def main():
    parser = argparse.ArgumentParser(description="Run Planet Flap episodes")
    parser.add_argument("--episodes", type=int, default=10, help="Number of episodes")
    parser.add_argument("--stage", type=str, default="survival",
                        choices=[s.value for s in TrainingStage], help="Starting stage")
    parser.add_argument("--policy", type=str, default="autopilot", choices=POLICIES,
                        help="Scripted policy")
    parser.add_argument("--steps", type=int, default=3000, help="Max steps per episode")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--log-interval", type=int, default=1, help="Log every N episodes")
    parser.add_argument("--extended-slots", type=int, default=0,
                        help="Extra gate slots in the observation")
    parser.add_argument("--full-game-reward", type=str, default="gate_alignment",
                        choices=FULL_GAME_REWARD_VARIANTS, help="FullGame shaping variant")
    parser.add_argument("--advance-every", type=int, default=0,
                        help="Advance the curriculum every N episodes")
    parser.add_argument("--config", type=str, default=None, help="Simulation YAML config")
    parser.add_argument("--log-level", type=str, default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    run_episodes(
        episodes=args.episodes,
        stage=args.stage,
        policy=args.policy,
        max_steps=args.steps,
        seed=args.seed,
        log_interval=args.log_interval,
        extended_gate_slots=args.extended_slots,
        full_game_reward=args.full_game_reward,
        config_path=args.config,
        advance_every=args.advance_every
    )


if __name__ == "__main__":
    main()
