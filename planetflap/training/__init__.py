"""
Training Module
===============
Reinforcement-learning surface for Planet Flap.

- planet_env: Gymnasium environment (PlanetFlap-v0)
- curriculum: Stages and reward shaping
- controls: Human input, heuristic and autopilot policies
- run_episodes: Episode runner CLI
"""

from .curriculum import (
    TrainingStage,
    EpisodeContext,
    StageSettings,
    parse_stage,
    next_stage,
    describe_stage,
    stage_settings,
    survival_reward,
    gate_alignment_reward,
    crossing_bonus_reward,
    stage_reward
)
from .planet_env import (
    PlanetFlapEnv,
    PlanetFlapEnvConfig,
    gate_offset,
    nearest_gate_ahead
)
from .controls import (
    HumanInput,
    AutopilotPolicy,
    heuristic_action,
    quantize_strafe
)

__all__ = [
    'TrainingStage',
    'EpisodeContext',
    'StageSettings',
    'parse_stage',
    'next_stage',
    'describe_stage',
    'stage_settings',
    'survival_reward',
    'gate_alignment_reward',
    'crossing_bonus_reward',
    'stage_reward',
    'PlanetFlapEnv',
    'PlanetFlapEnvConfig',
    'gate_offset',
    'nearest_gate_ahead',
    'HumanInput',
    'AutopilotPolicy',
    'heuristic_action',
    'quantize_strafe',
]
