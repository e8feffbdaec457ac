"""
Follow Camera
=============
Chase camera that trails the creature around the planet.

Sits behind and above the body in its own tangent frame:

    desired = position - forward * distance_back + normal * distance_up

and eases toward the desired point with frame-rate independent
exponential smoothing, alpha = 1 - exp(-smooth * dt). It only reads the
body pose; nothing is written back to the simulation.
"""

import numpy as np
from dataclasses import dataclass, field

from ..physics.frame import WORLD_Z, normalize, look_rotation


@dataclass
class CameraState:
    """Current camera state."""
    position: np.ndarray      # World position
    look_at: np.ndarray       # Target point
    up_vector: np.ndarray = field(default_factory=lambda: WORLD_Z.copy())


class FollowCamera:
    """
    Smoothed chase camera.

    Args:
        distance_back: Distance behind the body along its heading
        distance_up: Height above the body along the surface normal
        smooth: Exponential smoothing rate (1/s); 0 freezes the camera
    """

    def __init__(self,
                 distance_back: float = 6.0,
                 distance_up: float = 2.0,
                 smooth: float = 6.0):
        self.distance_back = distance_back
        self.distance_up = distance_up
        self.smooth = max(0.0, smooth)
        self.state = None

    def desired_position(self,
                         position: np.ndarray,
                         forward: np.ndarray,
                         normal: np.ndarray) -> np.ndarray:
        return (np.asarray(position, dtype=np.float64)
                - normalize(forward) * self.distance_back
                + normalize(normal, fallback=WORLD_Z) * self.distance_up)

    def snap(self, position: np.ndarray, forward: np.ndarray, normal: np.ndarray) -> CameraState:
        """Jump straight to the desired pose (first frame / after restart)"""
        self.state = CameraState(
            position=self.desired_position(position, forward, normal),
            look_at=np.array(position, dtype=np.float64),
            up_vector=normalize(normal, fallback=WORLD_Z)
        )
        return self.state

    def update(self,
               dt: float,
               position: np.ndarray,
               forward: np.ndarray,
               normal: np.ndarray) -> CameraState:
        """
        Advance the camera one frame toward the chase pose.

        Returns:
            The updated CameraState
        """
        if self.state is None:
            return self.snap(position, forward, normal)

        desired = self.desired_position(position, forward, normal)
        alpha = 1.0 - np.exp(-self.smooth * dt)
        self.state.position = self._lerp(self.state.position, desired, alpha)
        self.state.look_at = np.array(position, dtype=np.float64)
        self.state.up_vector = normalize(normal, fallback=WORLD_Z)
        return self.state

    def orientation(self) -> np.ndarray:
        """3x3 camera orientation facing the body, columns (forward, right, up)"""
        if self.state is None:
            return np.eye(3)
        return look_rotation(self.state.look_at - self.state.position, self.state.up_vector)

    def _lerp(self, a: np.ndarray, b: np.ndarray, t: float) -> np.ndarray:
        return a + (b - a) * t
