"""
Physics Module
==============
Core geometry and motion for the spherical flight simulation.

Submodules:
- frame: Tangent-frame utility (normal / forward / right)
- planet_spin: The rotating planet and its spin driver
- locomotion: Radial flap/gravity/damping model and heading yaw
"""

from .frame import (
    Frame,
    compute_frame,
    normalize,
    project_on_plane,
    rotate_about_axis,
    axis_angle_matrix,
    look_rotation,
    any_perpendicular
)

from .planet_spin import (
    PlanetBody,
    PlanetSpinner,
    SpinConfig
)

from .locomotion import (
    LocomotionBody,
    LocomotionConfig,
    LocomotionState,
    BodyState,
    DeathCause
)

__all__ = [
    # Frame
    'Frame',
    'compute_frame',
    'normalize',
    'project_on_plane',
    'rotate_about_axis',
    'axis_angle_matrix',
    'look_rotation',
    'any_perpendicular',
    # Planet
    'PlanetBody',
    'PlanetSpinner',
    'SpinConfig',
    # Locomotion
    'LocomotionBody',
    'LocomotionConfig',
    'LocomotionState',
    'BodyState',
    'DeathCause',
]
