"""
Test Suite: Curriculum Rewards
==============================
Unit tests for the reward shaping terms and stage helpers.
"""

import numpy as np
import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from planetflap.training.curriculum import (
    TrainingStage,
    EpisodeContext,
    parse_stage,
    next_stage,
    describe_stage,
    stage_settings,
    survival_reward,
    gate_alignment_reward,
    crossing_bonus_reward,
    stage_reward,
    CROSSING_BONUS
)


class TestStages:
    """Tests for stage parsing and ordering"""

    @pytest.mark.parametrize("value", ["simple_pipes", "SIMPLE_PIPES", " Simple_Pipes ",
                                       TrainingStage.SIMPLE_PIPES])
    def test_parse(self, value):
        assert parse_stage(value) == TrainingStage.SIMPLE_PIPES

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            parse_stage("boss_fight")

    def test_next_stage(self):
        assert next_stage(TrainingStage.SURVIVAL) == TrainingStage.SIMPLE_PIPES
        assert next_stage(TrainingStage.SIMPLE_PIPES) == TrainingStage.FULL_GAME
        assert next_stage(TrainingStage.FULL_GAME) == TrainingStage.FULL_GAME

    def test_descriptions(self):
        assert describe_stage(TrainingStage.SIMPLE_PIPES) == "Simple Pipes: Learn basic pipe navigation"

    def test_settings(self):
        assert not stage_settings(TrainingStage.SURVIVAL).spawner_enabled
        assert stage_settings(TrainingStage.SIMPLE_PIPES).spawn_interval == 8.0
        assert stage_settings(TrainingStage.FULL_GAME, full_interval=4.0).spawn_interval == 4.0

    def test_context_reset_keeps_stage(self):
        ctx = EpisodeContext(stage=TrainingStage.FULL_GAME)
        ctx.cumulative_reward = 5.0
        ctx.consecutive_flaps = 3
        ctx.have_prev_along = True
        ctx.reset(start_time=2.0)
        assert ctx.stage == TrainingStage.FULL_GAME
        assert ctx.cumulative_reward == 0.0
        assert ctx.consecutive_flaps == 0
        assert not ctx.have_prev_along
        assert ctx.episode_start_time == 2.0

    def test_flap_streak(self):
        ctx = EpisodeContext()
        for _ in range(3):
            ctx.record_flap(True)
        assert ctx.consecutive_flaps == 3
        ctx.record_flap(False)
        assert ctx.consecutive_flaps == 0


class TestSurvivalReward:
    """Tests for the hover shaping"""

    def test_optimal_hover(self):
        # 0.02 + 0.01 + 0.002
        assert survival_reward(3.75, 0.0, False, 0) == pytest.approx(0.032)

    def test_flap_loses_bonus(self):
        assert survival_reward(3.75, 0.0, True, 1) == pytest.approx(0.03)

    def test_ceiling_danger(self):
        reward = survival_reward(13.0, 0.0, False, 0)
        expected = np.exp(-9.25 / 1.5) * 0.02 - 0.05 + 0.01 + 0.002
        assert reward == pytest.approx(expected)

    def test_flap_streak_penalty(self):
        base = survival_reward(3.75, 0.0, True, 2)
        assert survival_reward(3.75, 0.0, True, 5) == pytest.approx(base - 0.015)

    def test_velocity_term(self):
        assert survival_reward(3.75, 3.0, False, 0) < survival_reward(3.75, 0.0, False, 0)


class TestGateRewards:
    """Tests for the gate shaping terms"""

    def test_no_target(self):
        ctx = EpisodeContext()
        assert gate_alignment_reward(ctx, None, None) == 0.0

    def test_first_call_has_no_progress(self):
        ctx = EpisodeContext()
        reward = gate_alignment_reward(ctx, 1, (10.0, 0.0, 0.0))
        assert reward == pytest.approx(0.001 + 0.01)
        assert ctx.prev_along == 10.0

    def test_progress(self):
        ctx = EpisodeContext()
        gate_alignment_reward(ctx, 1, (10.0, 0.0, 0.0))
        reward = gate_alignment_reward(ctx, 1, (9.5, 0.0, 0.0))
        assert reward == pytest.approx(0.002 * 0.5 + 0.011)

    def test_progress_clipped(self):
        ctx = EpisodeContext()
        gate_alignment_reward(ctx, 1, (10.0, 0.0, 0.0))
        reward = gate_alignment_reward(ctx, 1, (5.0, 0.0, 0.0))
        assert reward == pytest.approx(0.002 + 0.011)

    def test_target_switch_keeps_baseline(self):
        ctx = EpisodeContext()
        gate_alignment_reward(ctx, 1, (0.5, 0.0, 0.0))
        reward = gate_alignment_reward(ctx, 2, (12.0, 0.0, 0.0))
        # clip(0.5 - 12, -1, 1) = -1
        assert reward == pytest.approx(-0.002 + 0.011)
        assert ctx.prev_along == 12.0
        assert ctx.prev_target_id == 2

    def test_baseline_seeded_once_per_episode(self):
        ctx = EpisodeContext()
        gate_alignment_reward(ctx, 1, (4.0, 0.0, 0.0))
        ctx.reset()
        reward = gate_alignment_reward(ctx, 2, (12.0, 0.0, 0.0))
        assert reward == pytest.approx(0.011)

    def test_crossing_bonus(self):
        ctx = EpisodeContext()
        crossing_bonus_reward(ctx, 1, (0.02, 0.0, 0.0), None)
        reward = crossing_bonus_reward(ctx, 2, (12.0, 0.0, 0.0), prev_target_along=-0.015)
        closeness = 1.0 / 13.0
        expected = 0.1 + closeness * 0.001 + 0.02
        assert reward == pytest.approx(expected)

    def test_no_bonus_without_crossing(self):
        ctx = EpisodeContext()
        crossing_bonus_reward(ctx, 1, (3.0, 0.0, 0.0), None)
        reward = crossing_bonus_reward(ctx, 1, (2.9, 0.0, 0.0), prev_target_along=2.9)
        assert reward < 0.1

    def test_bonus_when_target_disappears(self):
        ctx = EpisodeContext()
        crossing_bonus_reward(ctx, 1, (0.02, 0.0, 0.0), None)
        assert crossing_bonus_reward(ctx, None, None, prev_target_along=-0.01) == pytest.approx(0.1)
        # Only once
        assert crossing_bonus_reward(ctx, None, None, prev_target_along=-0.05) == 0.0


class TestStageReward:
    """Tests for stage composition"""

    def test_survival_stage(self):
        ctx = EpisodeContext(stage=TrainingStage.SURVIVAL)
        reward = stage_reward(TrainingStage.SURVIVAL, ctx, 3.75, 0.0, False)
        assert reward == pytest.approx(0.032)

    def test_simple_pipes_scales_survival(self):
        ctx = EpisodeContext()
        reward = stage_reward(TrainingStage.SIMPLE_PIPES, ctx, 3.75, 0.0, False)
        assert reward == pytest.approx(0.0032)

    def test_full_game_scales_survival(self):
        ctx = EpisodeContext()
        reward = stage_reward(TrainingStage.FULL_GAME, ctx, 3.75, 0.0, False,
                              target_id=1, offset=(10.0, 0.0, 0.0))
        assert reward == pytest.approx(0.0064 + 0.011)

    def test_full_game_crossing_variant(self):
        ctx = EpisodeContext()
        reward = stage_reward(TrainingStage.FULL_GAME, ctx, 3.75, 0.0, False,
                              target_id=1, offset=(10.0, 0.0, 0.0),
                              full_game_reward=CROSSING_BONUS)
        assert reward == pytest.approx(0.0064 + 0.001 / 11.0 + 0.02)

    def test_unknown_variant(self):
        with pytest.raises(ValueError):
            stage_reward(TrainingStage.FULL_GAME, EpisodeContext(), 0.0, 0.0, False,
                         full_game_reward="dense")
