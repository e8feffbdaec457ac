"""
Planet Spin Module
==================
The rotating planet and the driver that spins it.

The flying body never travels across the surface. Instead the whole planet
(and every gate attached to it) rotates underneath the body so that the
ground appears to rush toward it. The rotation axis is recomputed every
tick from the body's heading:

    f = forward projected onto the tangent plane at the body
    A = normalize(f x n)

Rotating about A carries points ahead of the body toward it, and the
tangent frame derived from A points forward along the heading.
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import Optional

from .frame import (
    EPSILON,
    WORLD_Z,
    normalize,
    project_on_plane,
    axis_angle_matrix
)

logger = logging.getLogger(__name__)


@dataclass
class SpinConfig:
    """Planet spin parameters"""
    angular_speed_deg: float = 4.0         # deg/s of planet rotation

    def __post_init__(self):
        if self.angular_speed_deg < 0:
            logger.warning("angular_speed_deg %.3f < 0, clamping to 0", self.angular_speed_deg)
            self.angular_speed_deg = 0.0

    @property
    def angular_speed(self) -> float:
        """Spin rate in rad/s"""
        return np.radians(self.angular_speed_deg)


class PlanetBody:
    """
    The planet: a sphere with an accumulated rotation.

    Gates are stored in planet-local coordinates and converted to world
    space through the current rotation, so rotating the planet moves every
    attached gate in one operation.
    """

    def __init__(self,
                 radius: float = 25.0,
                 center: Optional[np.ndarray] = None):
        if radius < 0:
            logger.warning("planet radius %.3f < 0, clamping to 0", radius)
            radius = 0.0
        self.radius = float(radius)
        self.center = np.zeros(3) if center is None else np.array(center, dtype=np.float64)
        self.rotation = np.eye(3)

    def rotate(self, axis: np.ndarray, angle: float):
        """Rotate the planet (and its children) about a world axis through the centre"""
        self.rotation = axis_angle_matrix(axis, angle) @ self.rotation

    def reset_rotation(self):
        self.rotation = np.eye(3)

    def to_world(self, local_point: np.ndarray) -> np.ndarray:
        """Planet-local point -> world point"""
        return self.center + self.rotation @ local_point

    def to_local(self, world_point: np.ndarray) -> np.ndarray:
        """World point -> planet-local point"""
        return self.rotation.T @ (np.asarray(world_point, dtype=np.float64) - self.center)

    def direction_to_world(self, local_dir: np.ndarray) -> np.ndarray:
        return self.rotation @ local_dir

    def direction_to_local(self, world_dir: np.ndarray) -> np.ndarray:
        return self.rotation.T @ np.asarray(world_dir, dtype=np.float64)


class PlanetSpinner:
    """
    Spins the planet so the ground moves toward the flying body.

    Publishes `current_axis`, which every tangent-frame computation in the
    same tick uses to find "forward".
    """

    def __init__(self, planet: PlanetBody, body, config: Optional[SpinConfig] = None):
        self.planet = planet
        self.body = body
        self.config = config or SpinConfig()

        self.current_axis = WORLD_Z.copy()
        self.total_angle = 0.0

        self.refresh_axis()

    def _compute_axis(self) -> Optional[np.ndarray]:
        """Axis from the body's heading, or None if degenerate"""
        n = normalize(self.body.position - self.planet.center)
        if not n.any():
            return None

        # Heading projected onto the tangent plane (robust to body tilt)
        f = project_on_plane(self.body.forward, n)
        if float(np.dot(f, f)) < EPSILON:
            f = project_on_plane(self.body.right, n)
            if float(np.dot(f, f)) < EPSILON:
                return None
        f = normalize(f)

        axis = np.cross(f, n)
        if float(np.dot(axis, axis)) < EPSILON:
            return None
        return normalize(axis)

    def refresh_axis(self) -> bool:
        """
        Recompute the published axis without rotating.

        Returns:
            True if the axis was updated
        """
        axis = self._compute_axis()
        if axis is None:
            return False
        self.current_axis = axis
        return True

    def tick(self, dt: float) -> bool:
        """
        Advance the spin by one fixed step.

        A degenerate heading makes the tick a no-op: the axis is left
        unchanged and the planet is not rotated.

        Returns:
            True if the planet was rotated
        """
        axis = self._compute_axis()
        if axis is None:
            logger.debug("Degenerate heading, skipping spin tick")
            return False

        self.current_axis = axis
        angle = self.config.angular_speed * dt
        self.planet.rotate(axis, angle)
        self.total_angle += angle
        return True

    def reset(self):
        self.total_angle = 0.0
        self.refresh_axis()
