"""
Test Suite: Locomotion
======================
Unit tests for the radial flap/gravity/damping model of the flying body.

Tests:
- Flap impulse and the inelastic floor
- Ceiling grace period (exactly one death)
- Heading yaw from strafe input
- Input consumption and reset
"""

import numpy as np
import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from planetflap.physics import (
    PlanetBody,
    LocomotionBody,
    LocomotionConfig,
    BodyState,
    DeathCause
)

DT = 1.0 / 50.0


@pytest.fixture
def planet():
    return PlanetBody(radius=25.0)


@pytest.fixture
def body(planet):
    return LocomotionBody(planet, LocomotionConfig())


class TestLocomotionConfig:
    """Tests for config defaults and clamping"""

    def test_defaults(self):
        config = LocomotionConfig()
        assert config.ground_clearance == pytest.approx(0.05)
        assert config.max_altitude == pytest.approx(15.0)
        assert config.ceiling_grace == pytest.approx(0.15)
        np.testing.assert_array_equal(config.world_axis, [0.0, 0.0, 1.0])

    def test_flap_impulse(self):
        """v = sqrt(2 * g * h) = sqrt(18)"""
        assert LocomotionConfig().flap_impulse == pytest.approx(np.sqrt(18.0))

    def test_invalid_values_clamped(self):
        config = LocomotionConfig(gravity=-3.0, jump_height=-1.0, max_altitude=-5.0)
        assert config.gravity == pytest.approx(3.0)
        assert config.jump_height == 0.0
        assert config.max_altitude == 0.0
        assert config.flap_impulse == 0.0


class TestRadialModel:
    """Tests for the radial integration"""

    def test_starts_on_surface(self, body):
        assert body.altitude == 0.0
        assert body.radius == pytest.approx(25.05)
        assert body.body_state == BodyState.ALIVE

    def test_flap_adds_impulse(self, body):
        body.request_flap()
        telemetry = body.tick(DT)
        assert telemetry['flapped']
        assert body.altitude > 0.0
        # impulse, then gravity, then damping
        expected = (np.sqrt(18.0) - 3.0 * DT) * (1.0 - 1.5 * DT)
        assert body.radial_velocity == pytest.approx(expected)
        assert body.flap_count == 1

    def test_floor_is_idempotent(self, body):
        for _ in range(10):
            body.tick(DT)
            assert body.altitude == 0.0
            assert body.radial_velocity == 0.0
        assert body.radius == pytest.approx(body.base_radius)

    def test_survival_scenario_settles_on_floor(self, body):
        """No input for 1000 ticks at 50 Hz leaves the body on the floor"""
        for _ in range(1000):
            body.tick(DT)
        assert body.altitude == 0.0
        assert body.is_alive

    def test_falls_back_after_flap(self, body):
        body.request_flap()
        body.tick(DT)
        peak = 0.0
        for _ in range(1000):
            body.tick(DT)
            peak = max(peak, body.altitude)
        assert 0.0 < peak < 3.0
        assert body.altitude == 0.0

    def test_position_tracks_altitude(self, body):
        body.request_flap()
        for _ in range(10):
            body.tick(DT)
        assert body.radius == pytest.approx(body.base_radius + body.altitude)
        np.testing.assert_array_almost_equal(body.normal, [1.0, 0.0, 0.0])


class TestCeiling:
    """Tests for the ceiling grace period"""

    @pytest.fixture
    def floating(self, planet):
        # No gravity so the body hovers where it is put
        body = LocomotionBody(planet, LocomotionConfig(gravity=0.0))
        body.state.altitude = 15.5
        return body

    def test_dies_after_grace(self, floating):
        deaths = []
        floating.add_death_listener(deaths.append)

        for _ in range(7):
            floating.tick(DT)
        assert floating.is_alive
        assert floating.state.over_ceiling_timer == pytest.approx(0.14)

        floating.tick(DT)
        assert not floating.is_alive
        assert floating.death_cause == DeathCause.CEILING

        for _ in range(20):
            floating.tick(DT)
        assert deaths == [DeathCause.CEILING]

    def test_timer_resets_below_ceiling(self, floating):
        for _ in range(5):
            floating.tick(DT)
        assert floating.state.over_ceiling_timer > 0.0

        floating.state.altitude = 10.0
        floating.tick(DT)
        assert floating.state.over_ceiling_timer == 0.0
        assert floating.is_alive

    def test_kill_is_idempotent(self, body):
        deaths = []
        body.add_death_listener(deaths.append)
        assert body.kill(DeathCause.GATE_COLLISION)
        assert not body.kill(DeathCause.CEILING)
        assert deaths == [DeathCause.GATE_COLLISION]
        assert body.death_cause == DeathCause.GATE_COLLISION


class TestHeading:
    """Tests for strafe-driven yaw"""

    def test_positive_strafe_turns_right(self, body):
        old_forward = body.forward.copy()
        old_right = body.right.copy()

        body.set_strafe(1.0)
        body.tick(DT)

        assert np.dot(body.forward, old_right) > 0.0
        angle = np.degrees(np.arccos(np.clip(np.dot(body.forward, old_forward), -1.0, 1.0)))
        assert angle == pytest.approx(90.0 * DT, abs=1e-6)

    def test_strafe_is_clamped(self, body):
        old_forward = body.forward.copy()
        body.set_strafe(5.0)
        body.tick(DT)
        angle = np.degrees(np.arccos(np.clip(np.dot(body.forward, old_forward), -1.0, 1.0)))
        assert angle == pytest.approx(90.0 * DT, abs=1e-6)

    def test_inputs_consumed_once(self, body):
        body.apply_controls(True, 1.0)
        body.tick(DT)
        forward = body.forward.copy()
        velocity = body.radial_velocity

        body.tick(DT)
        np.testing.assert_array_almost_equal(body.forward, forward)
        assert body.radial_velocity < velocity
        assert body.flap_count == 1

    def test_inputs_cleared_while_dead(self, body):
        body.kill(DeathCause.GATE_COLLISION)
        body.apply_controls(True, -1.0)
        forward = body.forward.copy()
        telemetry = body.tick(DT)
        assert not telemetry['flapped']
        np.testing.assert_array_equal(body.forward, forward)
        assert body.altitude == 0.0

    def test_forward_stays_tangent(self, body):
        for i in range(200):
            body.apply_controls(i % 20 == 0, 0.7)
            body.tick(DT)
            assert np.dot(body.forward, body.normal) == pytest.approx(0.0, abs=1e-9)
            assert np.linalg.norm(body.forward) == pytest.approx(1.0)


class TestReset:
    """Tests for episode reset"""

    def test_reset_restores_canonical_state(self, body):
        body.request_flap()
        body.set_strafe(1.0)
        for _ in range(20):
            body.tick(DT)
        body.kill(DeathCause.CEILING)

        body.reset()

        assert body.is_alive
        assert body.death_cause is None
        assert body.altitude == 0.0
        assert body.radial_velocity == 0.0
        assert body.state.over_ceiling_timer == 0.0
        assert body.flap_count == 0
        assert body.radius == pytest.approx(25.05)
        # world_axis x normal = z x x = y
        np.testing.assert_array_almost_equal(body.forward, [0.0, 1.0, 0.0])

    def test_reset_clears_staged_input(self, body):
        body.request_flap()
        body.reset()
        telemetry = body.tick(DT)
        assert not telemetry['flapped']

    def test_revives_only_through_reset(self, body):
        body.kill(DeathCause.CEILING)
        for _ in range(10):
            body.tick(DT)
        assert body.body_state == BodyState.DEAD
        body.reset()
        assert body.body_state == BodyState.ALIVE
