"""
Test Suite: Spherical Frame and Planet Spin
===========================================
Unit tests for the tangent-frame geometry and the rotating planet.

Tests:
- Frame orthonormality and pole fallback
- Rodrigues rotation direction
- Planet local/world round trip
- Spin axis selection and degenerate headings
"""

import numpy as np
import pytest
import sys
from pathlib import Path
from types import SimpleNamespace

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from planetflap.physics import (
    Frame,
    compute_frame,
    normalize,
    project_on_plane,
    rotate_about_axis,
    axis_angle_matrix,
    look_rotation,
    any_perpendicular,
    PlanetBody,
    PlanetSpinner,
    SpinConfig,
    LocomotionBody
)


def assert_orthonormal(frame: Frame):
    for v in (frame.normal, frame.forward, frame.right):
        assert np.linalg.norm(v) == pytest.approx(1.0)
        assert not np.any(np.isnan(v))
    assert np.dot(frame.normal, frame.forward) == pytest.approx(0.0, abs=1e-9)
    assert np.dot(frame.normal, frame.right) == pytest.approx(0.0, abs=1e-9)
    assert np.dot(frame.forward, frame.right) == pytest.approx(0.0, abs=1e-9)
    np.testing.assert_array_almost_equal(frame.right, np.cross(frame.normal, frame.forward))


class TestVectorHelpers:
    """Tests for the small vector utilities"""

    def test_normalize_unit_length(self):
        v = normalize(np.array([3.0, 4.0, 0.0]))
        np.testing.assert_array_almost_equal(v, [0.6, 0.8, 0.0])

    def test_normalize_degenerate_uses_fallback(self):
        np.testing.assert_array_equal(normalize(np.zeros(3)), np.zeros(3))
        np.testing.assert_array_equal(normalize(np.zeros(3), fallback=[0, 0, 1]), [0, 0, 1])

    def test_project_on_plane_removes_normal_component(self):
        v = project_on_plane(np.array([1.0, 2.0, 3.0]), np.array([0.0, 0.0, 1.0]))
        np.testing.assert_array_almost_equal(v, [1.0, 2.0, 0.0])

    def test_rotate_about_axis_right_hand_rule(self):
        """x rotated +90 deg about z is y"""
        v = rotate_about_axis(np.array([1.0, 0.0, 0.0]), np.array([0.0, 0.0, 1.0]), np.pi / 2)
        np.testing.assert_array_almost_equal(v, [0.0, 1.0, 0.0])

    def test_axis_angle_matrix_matches_rodrigues(self):
        axis = normalize(np.array([1.0, 2.0, -0.5]))
        v = np.array([0.3, -1.2, 2.0])
        R = axis_angle_matrix(axis, 0.7)
        np.testing.assert_array_almost_equal(R @ v, rotate_about_axis(v, axis, 0.7))
        np.testing.assert_array_almost_equal(R @ R.T, np.eye(3))

    def test_any_perpendicular(self):
        for n in ([1.0, 0.0, 0.0], [0.0, 1.0, 0.0], normalize(np.array([1.0, 1.0, 1.0]))):
            p = any_perpendicular(np.asarray(n))
            assert np.dot(p, n) == pytest.approx(0.0, abs=1e-9)
            assert np.linalg.norm(p) == pytest.approx(1.0)

    def test_look_rotation_columns(self):
        M = look_rotation(np.array([0.0, 1.0, 0.2]), np.array([1.0, 0.0, 0.0]))
        np.testing.assert_array_almost_equal(M[:, 2], [1.0, 0.0, 0.0])
        np.testing.assert_array_almost_equal(M[:, 0], [0.0, 1.0, 0.0])
        np.testing.assert_array_almost_equal(M.T @ M, np.eye(3))


class TestComputeFrame:
    """Tests for the tangent frame at a point on the sphere"""

    def test_equator_frame(self):
        frame = compute_frame(np.array([25.0, 0.0, 0.0]), np.zeros(3),
                              np.array([0.0, 0.0, -1.0]), np.zeros(3))
        np.testing.assert_array_almost_equal(frame.normal, [1.0, 0.0, 0.0])
        np.testing.assert_array_almost_equal(frame.forward, [0.0, 1.0, 0.0])
        np.testing.assert_array_almost_equal(frame.right, [0.0, 0.0, 1.0])

    @pytest.mark.parametrize("position,axis", [
        ([3.0, -4.0, 12.0], [0.2, 0.9, -0.1]),
        ([-25.0, 1.0, 0.5], [0.0, 0.0, 1.0]),
        ([0.1, 0.1, -30.0], [1.0, 0.0, 0.0]),
    ])
    def test_orthonormal(self, position, axis):
        frame = compute_frame(np.array(position), np.zeros(3), np.array(axis), np.array([1.0, 0.0, 0.0]))
        assert_orthonormal(frame)

    def test_pole_falls_back_to_previous_forward(self):
        """Spin axis parallel to the normal: forward from the fallback"""
        frame = compute_frame(np.array([0.0, 0.0, 25.0]), np.zeros(3),
                              np.array([0.0, 0.0, 1.0]), np.array([1.0, 0.0, 0.3]))
        np.testing.assert_array_almost_equal(frame.forward, [1.0, 0.0, 0.0])
        assert_orthonormal(frame)

    def test_pole_with_degenerate_fallback_never_nan(self):
        frame = compute_frame(np.array([0.0, 0.0, 25.0]), np.zeros(3),
                              np.array([0.0, 0.0, 1.0]), np.array([0.0, 0.0, 1.0]))
        assert_orthonormal(frame)

    def test_position_at_centre(self):
        frame = compute_frame(np.zeros(3), np.zeros(3), np.array([0.0, 0.0, 1.0]), np.zeros(3))
        assert_orthonormal(frame)

    def test_decompose(self):
        frame = compute_frame(np.array([25.0, 0.0, 0.0]), np.zeros(3),
                              np.array([0.0, 0.0, -1.0]), np.zeros(3))
        along, lateral, radial = frame.decompose(np.array([0.5, 3.0, -2.0]))
        assert along == pytest.approx(3.0)
        assert lateral == pytest.approx(-2.0)
        assert radial == pytest.approx(0.5)


class TestPlanetBody:
    """Tests for the rotating planet"""

    def test_round_trip(self):
        planet = PlanetBody(radius=25.0, center=np.array([1.0, 2.0, 3.0]))
        planet.rotate(np.array([0.3, 1.0, 0.0]), 0.8)
        point = np.array([5.0, -7.0, 11.0])
        np.testing.assert_array_almost_equal(planet.to_world(planet.to_local(point)), point)

    def test_negative_radius_clamped(self):
        assert PlanetBody(radius=-3.0).radius == 0.0

    def test_reset_rotation(self):
        planet = PlanetBody()
        planet.rotate(np.array([0.0, 0.0, 1.0]), 1.0)
        planet.reset_rotation()
        np.testing.assert_array_equal(planet.rotation, np.eye(3))


class TestPlanetSpinner:
    """Tests for the spin driver"""

    @pytest.fixture
    def world(self):
        planet = PlanetBody(radius=25.0)
        body = LocomotionBody(planet)
        spinner = PlanetSpinner(planet, body, SpinConfig(angular_speed_deg=4.0))
        return planet, body, spinner

    def test_axis_is_forward_cross_normal(self, world):
        planet, body, spinner = world
        expected = normalize(np.cross(body.forward, body.normal))
        np.testing.assert_array_almost_equal(spinner.current_axis, expected)

    def test_frame_forward_matches_heading(self, world):
        planet, body, spinner = world
        frame = compute_frame(body.position, planet.center, spinner.current_axis, body.forward)
        np.testing.assert_array_almost_equal(frame.forward, body.forward)

    def test_points_ahead_approach_body(self, world):
        planet, body, spinner = world
        frame = compute_frame(body.position, planet.center, spinner.current_axis, body.forward)
        ahead = body.position + frame.forward * 10.0
        local = planet.to_local(ahead)

        along_before = frame.decompose(planet.to_world(local) - body.position)[0]
        assert spinner.tick(0.02)
        along_after = frame.decompose(planet.to_world(local) - body.position)[0]

        assert along_after < along_before
        # 4 deg/s * 0.02 s on a ~25-unit lever
        assert along_before - along_after == pytest.approx(0.035, abs=0.005)

    def test_total_angle_accumulates(self, world):
        planet, body, spinner = world
        for _ in range(50):
            spinner.tick(0.02)
        assert spinner.total_angle == pytest.approx(np.radians(4.0))
        spinner.reset()
        assert spinner.total_angle == 0.0

    def test_negative_speed_clamped(self):
        assert SpinConfig(angular_speed_deg=-2.0).angular_speed_deg == 0.0

    def test_forward_along_normal_uses_right(self):
        planet = PlanetBody(radius=25.0)
        body = SimpleNamespace(position=np.array([25.0, 0.0, 0.0]),
                               forward=np.array([1.0, 0.0, 0.0]),
                               right=np.array([0.0, 0.0, 1.0]))
        spinner = PlanetSpinner(planet, body)
        # right (z) x normal (x) = y
        np.testing.assert_array_almost_equal(spinner.current_axis, [0.0, 1.0, 0.0])

    def test_degenerate_heading_is_noop(self):
        planet = PlanetBody(radius=25.0)
        body = SimpleNamespace(position=np.array([25.0, 0.0, 0.0]),
                               forward=np.array([1.0, 0.0, 0.0]),
                               right=np.array([-1.0, 0.0, 0.0]))
        spinner = PlanetSpinner(planet, body)
        axis_before = spinner.current_axis.copy()

        assert spinner.tick(0.02) is False
        np.testing.assert_array_equal(spinner.current_axis, axis_before)
        np.testing.assert_array_equal(planet.rotation, np.eye(3))
