"""
Planet Flap Gymnasium Environment
=================================

Gymnasium-compatible environment for training flight agents on the
spinning planet.

Observation Space (9 + 3 * extended_gate_slots):
- Body state (3): altitude / 15, radial velocity / 5, (15 - altitude) / 15
- Target gate (6): along / 20, lateral / 10, radial error / 5,
  d(along) / 5, relative velocity / 5, alignment score
  (zero-filled in SURVIVAL or when no gate is ahead)
- Extended slots (3 each, optional): along / 20, lateral / 10,
  radial error / 5 for the k closest gates inside the lookahead arc

Action Space (MultiDiscrete [2, 3]):
- flap: 0 = no, 1 = flap
- strafe: 0 = left, 1 = none, 2 = right

Rewards:
- Stage shaping every tick while alive (see curriculum)
- +3 per gate passed
- -1 on death, which terminates the episode
"""

import logging
import numpy as np
import gymnasium as gym
from gymnasium import spaces
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..main import PlanetFlapSimulation, merge_config
from ..collaborators import SimulationMode, ControlMode
from ..entities import Gate
from ..physics import DeathCause, Frame, normalize
from .curriculum import (
    TrainingStage,
    EpisodeContext,
    FULL_GAME_REWARD_VARIANTS,
    GATE_ALIGNMENT,
    GATE_PASSED_REWARD,
    DEATH_PENALTY,
    parse_stage,
    next_stage,
    describe_stage,
    stage_settings,
    stage_reward
)

logger = logging.getLogger(__name__)

BASE_OBS_DIM = 9
SLOT_OBS_DIM = 3

# Observation scales
ALTITUDE_SCALE = 15.0
VELOCITY_SCALE = 5.0
ALONG_SCALE = 20.0
LATERAL_SCALE = 10.0
RADIAL_SCALE = 5.0
DELTA_ALONG_SCALE = 5.0

# strafe action index -> input
STRAFE_VALUES = (-1.0, 0.0, 1.0)


@dataclass
class PlanetFlapEnvConfig:
    """Configuration for the training environment."""
    stage: str = "survival"
    simple_spawn_interval: float = 8.0
    full_spawn_interval: float = 5.0
    max_arc_lookahead_deg: float = 60.0
    extended_gate_slots: int = 0
    full_game_reward: str = GATE_ALIGNMENT
    max_episode_steps: int = 3000
    dt: float = 0.02

    mode: SimulationMode = SimulationMode.TRAINING
    control: ControlMode = ControlMode.AI

    # Simulation overrides, merged over the simulation defaults
    sim_config: Optional[Dict] = None
    config_path: Optional[str] = None

    def __post_init__(self):
        self.stage = parse_stage(self.stage).value
        if self.full_game_reward not in FULL_GAME_REWARD_VARIANTS:
            raise ValueError(f"Unknown full game reward: {self.full_game_reward}. "
                             f"Available: {', '.join(FULL_GAME_REWARD_VARIANTS)}")
        if self.extended_gate_slots < 0:
            raise ValueError("extended_gate_slots must be >= 0")
        if self.dt <= 0:
            raise ValueError("dt must be > 0")


# =============================================================================
# TARGETING
# =============================================================================

def gate_offset(sim: PlanetFlapSimulation,
                gate: Gate,
                frame: Optional[Frame] = None) -> Tuple[float, float, float]:
    """
    Offset of a gate's gap centre from the body in the body's tangent frame.

    Returns:
        (along, lateral, radial_error)
    """
    frame = frame or sim.frame()
    return frame.decompose(gate.center(sim.planet) - sim.body.position)


def nearest_gate_ahead(sim: PlanetFlapSimulation,
                       frame: Optional[Frame] = None) -> Optional[Gate]:
    """Closest gate with along > 0 (gates behind are ignored)"""
    frame = frame or sim.frame()
    best = None
    best_along = np.inf
    for gate in sim.registry:
        along = gate_offset(sim, gate, frame)[0]
        if along <= 0.0:
            continue
        if along < best_along:
            best_along = along
            best = gate
    return best


class PlanetFlapEnv(gym.Env):
    """
    Gymnasium environment for the planet flight game.

    The environment owns a PlanetFlapSimulation and advances it one fixed
    tick per step. Curriculum stage persists across episodes until changed
    with set_training_stage / next_training_stage.
    """

    metadata = {"render_modes": ["ansi"], "render_fps": 50}

    def __init__(self, config: PlanetFlapEnvConfig = None, render_mode: str = None):
        super().__init__()

        self.config = config or PlanetFlapEnvConfig()
        self.render_mode = render_mode

        sim_config = merge_config({'simulation': {'timestep': self.config.dt}},
                                  self.config.sim_config or {})
        self.sim = PlanetFlapSimulation(
            config_path=self.config.config_path,
            config=sim_config,
            mode=self.config.mode,
            control=self.config.control
        )
        self.sim.score_listeners.append(self._on_gate_scored)
        self.sim.death_listeners.append(self._on_body_died)

        self.ctx = EpisodeContext(stage=parse_stage(self.config.stage))

        # State
        self.step_count = 0
        self._step_reward = 0.0
        self._needs_reset = True

        # Define spaces
        obs_dim = BASE_OBS_DIM + SLOT_OBS_DIM * self.config.extended_gate_slots
        self.observation_space = spaces.Box(
            low=-np.inf, high=np.inf, shape=(obs_dim,), dtype=np.float32
        )
        self.action_space = spaces.MultiDiscrete([2, 3])

    # ===== CURRICULUM =====

    @property
    def stage(self) -> TrainingStage:
        return self.ctx.stage

    def set_training_stage(self, stage):
        """Switch stage and apply its spawner settings immediately"""
        self.ctx.stage = parse_stage(stage)
        self._configure_stage()
        logger.info("Training stage: %s", self.stage_description())

    def next_training_stage(self):
        self.set_training_stage(next_stage(self.ctx.stage))

    def stage_description(self) -> str:
        return describe_stage(self.ctx.stage)

    def _configure_stage(self):
        settings = stage_settings(self.ctx.stage,
                                  self.config.simple_spawn_interval,
                                  self.config.full_spawn_interval)
        self.sim.spawner.enabled = settings.spawner_enabled
        if settings.spawn_interval is not None:
            self.sim.spawner.spawn_interval = settings.spawn_interval

    # ===== EPISODE =====

    def reset(self, seed: int = None, options: Dict = None) -> Tuple[np.ndarray, Dict]:
        """Reset the environment."""
        super().reset(seed=seed)

        # Gate placement draws from the env's seeded generator
        self.sim.rng = self.np_random
        self.sim.spawner.rng = self.np_random

        if options and 'stage' in options:
            self.ctx.stage = parse_stage(options['stage'])

        self.on_episode_begin()

        obs = self.collect_observations()
        return obs, self._info()

    def on_episode_begin(self):
        """Canonical start: body, gates, stage settings and shaping state"""
        self.sim.reset_episode(spawn_initial=False)
        self._configure_stage()
        self.sim.spawner.start()

        self.ctx.reset(start_time=self.sim.time)
        self.step_count = 0
        self._step_reward = 0.0
        self._needs_reset = False

    def step(self, action) -> Tuple[np.ndarray, float, bool, bool, Dict]:
        """Take a step in the environment."""
        assert not self._needs_reset, "Call reset() before step()"

        self._step_reward = 0.0
        self.on_action_received(action)

        # Scoring / death listeners add event rewards during the tick
        telemetry = self.sim.tick(self.config.dt)
        self.step_count += 1

        terminated = not self.sim.body.is_alive
        truncated = not terminated and self.step_count >= self.config.max_episode_steps
        if terminated or truncated:
            self._needs_reset = True

        obs = self.collect_observations()
        info = self._info()
        info['scored'] = telemetry['scored']
        if telemetry['death_cause'] is not None:
            info['death_cause'] = telemetry['death_cause'].value

        return obs, float(self._step_reward), terminated, truncated, info

    def on_action_received(self, action) -> float:
        """
        Stage the action on the body and add this tick's shaping reward.

        Returns:
            The shaping reward added (0 if the body is dead)
        """
        flap, strafe = self._decode_action(action)

        self.ctx.record_flap(flap)
        self.sim.apply_controls(flap, strafe)

        if not self.sim.body.is_alive:
            return 0.0

        frame = self.sim.frame()
        target = nearest_gate_ahead(self.sim, frame)
        target_id = target.gate_id if target is not None else None
        offset = gate_offset(self.sim, target, frame) if target is not None else None

        prev_target_along = None
        if self.ctx.prev_target_id is not None:
            prev_target = self.sim.registry.get(self.ctx.prev_target_id)
            if prev_target is not None:
                prev_target_along = gate_offset(self.sim, prev_target, frame)[0]

        reward = stage_reward(
            self.ctx.stage,
            self.ctx,
            altitude=self.sim.body.altitude,
            radial_velocity=self.sim.body.radial_velocity,
            flapped=flap,
            target_id=target_id,
            offset=offset,
            prev_target_along=prev_target_along,
            max_altitude=self.sim.body.config.max_altitude,
            full_game_reward=self.config.full_game_reward
        )
        self._add_reward(reward)
        return reward

    def _decode_action(self, action) -> Tuple[bool, float]:
        action = np.asarray(action).reshape(-1)
        if action.shape != (2,):
            raise ValueError(f"Expected action of shape (2,), got {action.shape}")
        flap_index, strafe_index = int(action[0]), int(action[1])
        if flap_index not in (0, 1) or strafe_index not in (0, 1, 2):
            raise ValueError(f"Action out of range: {action.tolist()}")
        return flap_index == 1, STRAFE_VALUES[strafe_index]

    def _add_reward(self, reward: float):
        self._step_reward += reward
        self.ctx.cumulative_reward += reward

    def _on_gate_scored(self, gate: Gate):
        self.ctx.score += 1
        self._add_reward(GATE_PASSED_REWARD)

    def _on_body_died(self, cause: DeathCause):
        self._add_reward(DEATH_PENALTY)
        logger.debug("Episode over after %.2fs (%s), reward %.4f",
                     self.sim.time - self.ctx.episode_start_time,
                     cause.value, self.ctx.cumulative_reward)

    # ===== TARGETING =====

    def next_gate(self) -> Optional[Gate]:
        """Nearest gate strictly ahead of the body"""
        return nearest_gate_ahead(self.sim)

    def top_gates(self, k: int) -> List[Gate]:
        """Up to k gates ahead and inside the lookahead arc, closest first"""
        if k <= 0:
            return []

        frame = self.sim.frame()
        candidates = []
        for gate in self.sim.registry:
            to_gate = gate.center(self.sim.planet) - self.sim.body.position
            along = float(np.dot(to_gate, frame.forward))
            if along <= 0.0:
                continue
            cos_arc = np.clip(np.dot(normalize(to_gate), frame.forward), -1.0, 1.0)
            arc = np.degrees(np.arccos(cos_arc))
            if arc <= self.config.max_arc_lookahead_deg:
                candidates.append((along, gate.gate_id, gate))

        candidates.sort(key=lambda c: (c[0], c[1]))
        return [gate for _, _, gate in candidates[:k]]

    # ===== OBSERVATION =====

    def collect_observations(self) -> np.ndarray:
        """Build the fixed-width observation vector."""
        body = self.sim.body
        altitude = body.altitude
        radial_velocity = body.radial_velocity

        obs = [
            altitude / ALTITUDE_SCALE,
            np.clip(radial_velocity / VELOCITY_SCALE, -1.0, 1.0),
            (ALTITUDE_SCALE - altitude) / ALTITUDE_SCALE,
        ]

        target = None
        if self.ctx.stage != TrainingStage.SURVIVAL:
            target = self.next_gate()

        if target is not None:
            along, lateral, radial_error = gate_offset(self.sim, target)

            if self.ctx.have_prev_obs:
                d_along = along - self.ctx.prev_along_obs
            else:
                d_along = 0.0
            self.ctx.prev_along_obs = along
            self.ctx.have_prev_obs = True

            # Gates do not move radially
            relative_velocity = radial_velocity

            lateral_alignment = np.exp(-abs(lateral) / 5.0)
            height_alignment = np.exp(-abs(radial_error) / 2.0)

            obs.extend([
                np.clip(along / ALONG_SCALE, -1.0, 1.0),
                np.clip(lateral / LATERAL_SCALE, -1.0, 1.0),
                np.clip(radial_error / RADIAL_SCALE, -1.0, 1.0),
                np.clip(d_along / DELTA_ALONG_SCALE, -1.0, 1.0),
                np.clip(relative_velocity / VELOCITY_SCALE, -1.0, 1.0),
                (lateral_alignment + height_alignment) / 2.0,
            ])
        else:
            obs.extend([0.0] * 6)

        slots = self.config.extended_gate_slots
        if slots > 0:
            gates = self.top_gates(slots) if self.ctx.stage != TrainingStage.SURVIVAL else []
            for gate in gates:
                along, lateral, radial_error = gate_offset(self.sim, gate)
                obs.extend([
                    np.clip(along / ALONG_SCALE, -1.0, 1.0),
                    np.clip(lateral / LATERAL_SCALE, -1.0, 1.0),
                    np.clip(radial_error / RADIAL_SCALE, -1.0, 1.0),
                ])
            obs.extend([0.0] * (SLOT_OBS_DIM * (slots - len(gates))))

        return np.array(obs, dtype=np.float32)

    def _info(self) -> Dict:
        return {
            'step': self.step_count,
            'stage': self.ctx.stage.value,
            'altitude': self.sim.body.altitude,
            'alive': self.sim.body.is_alive,
            'score': self.ctx.score,
            'gates': len(self.sim.registry),
            'episode_reward': self.ctx.cumulative_reward,
        }

    # ===== RENDERING =====

    def render(self):
        """Render the environment."""
        if self.render_mode == "ansi":
            body = self.sim.body
            return (f"[{self.ctx.stage.value}] T={self.sim.time:6.2f}s | "
                    f"Alt: {body.altitude:5.2f} | Vr: {body.radial_velocity:+5.2f} | "
                    f"Gates: {len(self.sim.registry)} | Score: {self.ctx.score} | "
                    f"Reward: {self.ctx.cumulative_reward:+.3f}")
        return None

    def close(self):
        """Clean up."""
        self.sim.registry.clear()


# Register with Gymnasium
gym.register(
    id='PlanetFlap-v0',
    entry_point='planetflap.training.planet_env:PlanetFlapEnv',
    max_episode_steps=3000,
)
