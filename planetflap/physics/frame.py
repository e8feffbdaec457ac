"""
Spherical Frame Module
======================
Local tangent-frame geometry on the surface of a sphere.

Every directional question in the simulation ("what is ahead?", "how far
to the side?", "how high above the gate?") is answered in the tangent frame
at the flying body:

    normal  - radial outward from the planet centre
    forward - along the surface, in the direction of travel
    right   - lateral, right = normal x forward

The direction of travel comes from the planet spin axis:

    forward = -(spin_axis x normal)

which degenerates when the axis is parallel to the normal (poles). In that
case the previous forward projected onto the tangent plane is used.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional


# Squared-magnitude threshold for treating a vector as degenerate
EPSILON = 1e-6

WORLD_X = np.array([1.0, 0.0, 0.0])
WORLD_Y = np.array([0.0, 1.0, 0.0])
WORLD_Z = np.array([0.0, 0.0, 1.0])


@dataclass(frozen=True)
class Frame:
    """Orthonormal tangent frame at a point on the sphere"""
    normal: np.ndarray      # radial outward
    forward: np.ndarray     # tangent, direction of travel
    right: np.ndarray       # tangent, lateral

    def decompose(self, offset: np.ndarray):
        """
        Express a world-space offset in frame coordinates.

        Returns:
            (along, lateral, radial) components of the offset
        """
        return (float(np.dot(offset, self.forward)),
                float(np.dot(offset, self.right)),
                float(np.dot(offset, self.normal)))


def normalize(v: np.ndarray, fallback: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Unit vector in the direction of v.

    Returns a copy of `fallback` (or zeros) if v is degenerate.
    """
    v = np.asarray(v, dtype=np.float64)
    sq = float(np.dot(v, v))
    if sq < EPSILON * EPSILON:
        if fallback is None:
            return np.zeros(3)
        return np.array(fallback, dtype=np.float64)
    return v / np.sqrt(sq)


def project_on_plane(v: np.ndarray, normal: np.ndarray) -> np.ndarray:
    """Remove the component of v along a unit normal"""
    v = np.asarray(v, dtype=np.float64)
    return v - np.dot(v, normal) * normal


def any_perpendicular(normal: np.ndarray) -> np.ndarray:
    """Some unit vector perpendicular to a unit normal"""
    # Cross with the world axis least aligned with the normal
    axis = WORLD_X if abs(normal[0]) < 0.9 else WORLD_Y
    return normalize(np.cross(normal, axis))


def rotate_about_axis(v: np.ndarray, axis: np.ndarray, angle: float) -> np.ndarray:
    """
    Rotate v about a unit axis by angle (radians), right-hand rule.

    Rodrigues rotation:
        v' = v cos(a) + (k x v) sin(a) + k (k . v)(1 - cos(a))
    """
    k = normalize(axis)
    if not k.any():
        return np.array(v, dtype=np.float64)
    cos_a = np.cos(angle)
    sin_a = np.sin(angle)
    return (v * cos_a
            + np.cross(k, v) * sin_a
            + k * np.dot(k, v) * (1.0 - cos_a))


def axis_angle_matrix(axis: np.ndarray, angle: float) -> np.ndarray:
    """3x3 rotation matrix for a rotation about a unit axis"""
    k = normalize(axis)
    if not k.any():
        return np.eye(3)
    K = np.array([
        [0.0, -k[2], k[1]],
        [k[2], 0.0, -k[0]],
        [-k[1], k[0], 0.0]
    ])
    return np.eye(3) + np.sin(angle) * K + (1.0 - np.cos(angle)) * (K @ K)


def look_rotation(forward: np.ndarray, up: np.ndarray) -> np.ndarray:
    """
    Orientation matrix facing `forward` with the given `up`.

    Columns are (forward, right, up), orthonormalised so that `up` is kept
    exactly and forward is projected onto the plane perpendicular to it.
    """
    u = normalize(up, fallback=WORLD_Z)
    f = normalize(project_on_plane(forward, u))
    if not f.any():
        f = any_perpendicular(u)
    r = normalize(np.cross(u, f))
    return np.column_stack((f, r, u))


def compute_frame(position: np.ndarray,
                  planet_center: np.ndarray,
                  spin_axis: np.ndarray,
                  fallback_forward: np.ndarray) -> Frame:
    """
    Build the local tangent frame at `position`.

    Args:
        position: World position of the point of interest
        planet_center: World position of the planet centre
        spin_axis: Current planet spin axis (need not be normalised)
        fallback_forward: Previous forward, used near the poles

    Returns:
        Frame with orthonormal normal/forward/right
    """
    offset = np.asarray(position, dtype=np.float64) - planet_center
    if float(np.dot(offset, offset)) < EPSILON * EPSILON:
        # Position at the centre: callers guarantee this never happens
        return Frame(normal=WORLD_Z.copy(), forward=WORLD_X.copy(), right=WORLD_Y.copy())

    normal = normalize(offset)

    forward = -np.cross(spin_axis, normal)
    if float(np.dot(forward, forward)) < EPSILON:
        # Pole singularity: axis parallel to the normal
        forward = project_on_plane(fallback_forward, normal)
        if float(np.dot(forward, forward)) < EPSILON:
            forward = any_perpendicular(normal)
    forward = normalize(forward)

    right = normalize(np.cross(normal, forward))

    return Frame(normal=normal, forward=forward, right=right)
