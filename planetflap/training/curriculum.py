"""
Training Curriculum
===================
Staged curriculum and reward shaping for the flight agent.

Stages:
- SURVIVAL: no gates, learn to hover without touching the ceiling
- SIMPLE_PIPES: slow gate spawning, learn to line up with the gap
- FULL_GAME: full spawning rate

Per-tick shaping rewards are small; the sparse event rewards dominate:

    gate passed   +3
    death         -1  (episode ends)
"""

import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class TrainingStage(Enum):
    """Curriculum stages, in order"""
    SURVIVAL = "survival"
    SIMPLE_PIPES = "simple_pipes"
    FULL_GAME = "full_game"


STAGE_ORDER = (TrainingStage.SURVIVAL, TrainingStage.SIMPLE_PIPES, TrainingStage.FULL_GAME)

STAGE_DESCRIPTIONS = {
    TrainingStage.SURVIVAL: "Survival: Learn to fly without hitting ceiling",
    TrainingStage.SIMPLE_PIPES: "Simple Pipes: Learn basic pipe navigation",
    TrainingStage.FULL_GAME: "Full Game: Complete complexity",
}

# FullGame gate shaping variants
GATE_ALIGNMENT = "gate_alignment"
CROSSING_BONUS = "crossing_bonus"
FULL_GAME_REWARD_VARIANTS = (GATE_ALIGNMENT, CROSSING_BONUS)

# Sparse event rewards
GATE_PASSED_REWARD = 3.0
DEATH_PENALTY = -1.0

# Survival scaling per stage
SURVIVAL_SCALE = {
    TrainingStage.SURVIVAL: 1.0,
    TrainingStage.SIMPLE_PIPES: 0.1,
    TrainingStage.FULL_GAME: 0.2,
}


def parse_stage(value) -> TrainingStage:
    """
    Accept a TrainingStage, its value or its name (case-insensitive).

    Raises:
        ValueError: Unknown stage
    """
    if isinstance(value, TrainingStage):
        return value
    key = str(value).strip().lower()
    for stage in TrainingStage:
        if key in (stage.value, stage.name.lower()):
            return stage
    available = ', '.join(s.value for s in TrainingStage)
    raise ValueError(f"Unknown training stage: {value}. Available: {available}")


def next_stage(stage: TrainingStage) -> TrainingStage:
    """The following stage; FULL_GAME stays put"""
    index = STAGE_ORDER.index(stage)
    return STAGE_ORDER[min(index + 1, len(STAGE_ORDER) - 1)]


def describe_stage(stage: TrainingStage) -> str:
    return STAGE_DESCRIPTIONS.get(stage, "Unknown Stage")


@dataclass
class StageSettings:
    """Spawner configuration applied when a stage starts"""
    spawner_enabled: bool
    spawn_interval: Optional[float] = None   # None keeps the current interval


def stage_settings(stage: TrainingStage,
                   simple_interval: float = 8.0,
                   full_interval: float = 5.0) -> StageSettings:
    if stage == TrainingStage.SURVIVAL:
        return StageSettings(spawner_enabled=False)
    if stage == TrainingStage.SIMPLE_PIPES:
        return StageSettings(spawner_enabled=True, spawn_interval=simple_interval)
    return StageSettings(spawner_enabled=True, spawn_interval=full_interval)


@dataclass
class EpisodeContext:
    """
    Per-episode shaping state.

    Everything except `stage` is cleared at episode begin.
    """
    stage: TrainingStage = TrainingStage.SURVIVAL
    episode_start_time: float = 0.0
    prev_along: float = 0.0
    have_prev_along: bool = False
    prev_target_id: Optional[int] = None
    consecutive_flaps: int = 0
    cumulative_reward: float = 0.0
    score: int = 0

    # Observation-side finite difference
    prev_along_obs: float = 0.0
    have_prev_obs: bool = False

    def reset(self, start_time: float = 0.0):
        self.episode_start_time = start_time
        self.prev_along = 0.0
        self.have_prev_along = False
        self.prev_target_id = None
        self.consecutive_flaps = 0
        self.cumulative_reward = 0.0
        self.score = 0
        self.prev_along_obs = 0.0
        self.have_prev_obs = False

    def record_flap(self, flapped: bool):
        self.consecutive_flaps = self.consecutive_flaps + 1 if flapped else 0


# =============================================================================
# REWARD TERMS
# =============================================================================

def survival_reward(altitude: float,
                    radial_velocity: float,
                    flapped: bool,
                    consecutive_flaps: int,
                    max_altitude: float = 15.0) -> float:
    """
    Hover shaping.

    - Altitude near 25% of the ceiling
    - Linear penalty within 4 units of the ceiling
    - Low radial speed
    - Small bonus for not flapping, penalty for long flap streaks
    """
    reward = 0.0

    optimal_altitude = max_altitude * 0.25
    altitude_error = abs(altitude - optimal_altitude)
    reward += np.exp(-altitude_error / 1.5) * 0.02

    ceiling_distance = max_altitude - altitude
    if ceiling_distance < 4.0:
        reward += (4.0 - ceiling_distance) / 4.0 * -0.1

    reward += np.exp(-abs(radial_velocity) / 1.5) * 0.01

    if not flapped:
        reward += 0.002

    if consecutive_flaps > 2:
        reward -= 0.005 * (consecutive_flaps - 2)

    return float(reward)


def _seed_prev_along(ctx: EpisodeContext, target_id: int, along: float):
    # Seeded once per episode; a target switch keeps the previous baseline
    if not ctx.have_prev_along:
        ctx.prev_along = along
        ctx.have_prev_along = True
    ctx.prev_target_id = target_id


def gate_alignment_reward(ctx: EpisodeContext,
                          target_id: Optional[int],
                          offset: Optional[Tuple[float, float, float]]) -> float:
    """
    Progress toward the target gate plus lateral and height alignment.

    Args:
        ctx: Shaping state (prev_along is updated)
        target_id: Id of the nearest gate ahead, None if there is none
        offset: (along, lateral, radial_error) of the gap centre
    """
    if target_id is None or offset is None:
        return 0.0

    along, lateral, radial_error = offset
    _seed_prev_along(ctx, target_id, along)

    reward = 0.0
    progress = float(np.clip(ctx.prev_along - along, -1.0, 1.0))
    reward += 0.002 * progress
    ctx.prev_along = along

    reward += 0.001 * np.exp(-abs(lateral))
    reward += 0.01 * np.exp(-abs(radial_error) / 2.0)
    return float(reward)


def crossing_bonus_reward(ctx: EpisodeContext,
                          target_id: Optional[int],
                          offset: Optional[Tuple[float, float, float]],
                          prev_target_along: Optional[float]) -> float:
    """
    Richer FullGame shaping with a discrete crossing bonus.

    Args:
        ctx: Shaping state
        target_id: Id of the nearest gate ahead, None if there is none
        offset: (along, lateral, radial_error) of the gap centre
        prev_target_along: Current along of the previously targeted gate,
            None if it no longer exists
    """
    reward = 0.0

    # Bonus when the last target moved from ahead to behind
    if (ctx.have_prev_along and ctx.prev_target_id is not None
            and prev_target_along is not None
            and ctx.prev_along > 0.0 and prev_target_along <= 0.0):
        reward += 0.1
        ctx.have_prev_along = False

    if target_id is None or offset is None:
        ctx.prev_target_id = None
        ctx.have_prev_along = False
        return float(reward)

    along, lateral, radial_error = offset
    _seed_prev_along(ctx, target_id, along)

    progress = float(np.clip(ctx.prev_along - along, -1.0, 1.0))
    reward += 0.005 * progress
    ctx.prev_along = along

    closeness = float(np.clip(1.0 / (1.0 + abs(along)), 0.0, 1.0))
    reward += closeness * np.exp(-abs(lateral)) * 0.001
    reward += 0.02 * np.exp(-abs(radial_error) / 1.5)
    return float(reward)


def stage_reward(stage: TrainingStage,
                 ctx: EpisodeContext,
                 altitude: float,
                 radial_velocity: float,
                 flapped: bool,
                 target_id: Optional[int] = None,
                 offset: Optional[Tuple[float, float, float]] = None,
                 prev_target_along: Optional[float] = None,
                 max_altitude: float = 15.0,
                 full_game_reward: str = GATE_ALIGNMENT) -> float:
    """Per-tick shaping reward for the active stage"""
    survival = survival_reward(altitude, radial_velocity, flapped,
                               ctx.consecutive_flaps, max_altitude)
    reward = SURVIVAL_SCALE[stage] * survival

    if stage == TrainingStage.SIMPLE_PIPES:
        reward += gate_alignment_reward(ctx, target_id, offset)
    elif stage == TrainingStage.FULL_GAME:
        if full_game_reward == CROSSING_BONUS:
            reward += crossing_bonus_reward(ctx, target_id, offset, prev_target_along)
        elif full_game_reward == GATE_ALIGNMENT:
            reward += gate_alignment_reward(ctx, target_id, offset)
        else:
            raise ValueError(f"Unknown full game reward: {full_game_reward}")

    return float(reward)
