"""
Locomotion Module
=================
Radial and lateral motion of the flying body above the planet surface.

The body keeps a fixed world direction from the planet centre (the planet
spins underneath it) and only moves along two degrees of freedom:

- Radial: altitude above the nominal surface, driven by flap impulses,
  constant inward gravity and linear damping.
- Lateral: heading yaw about the local normal. The planet spinner picks up
  the new heading next tick, so the ground starts moving in the new
  direction.

Radial model per fixed tick:

    v += sqrt(2 |g| h)            (flap impulse, if requested)
    v -= |g| dt                   (gravity)
    altitude += v dt
    altitude = max(altitude, 0)   (inelastic floor, inward v zeroed)
    v -= v * damping * dt

Death happens on gate collision or after staying above the ceiling for a
continuous grace period.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from typing import Callable, List, Optional
from enum import Enum

from .frame import (
    EPSILON,
    WORLD_X,
    WORLD_Z,
    normalize,
    project_on_plane,
    any_perpendicular,
    rotate_about_axis,
    look_rotation
)
from .planet_spin import PlanetBody

logger = logging.getLogger(__name__)


class BodyState(Enum):
    """Life-cycle states of the flying body"""
    ALIVE = "alive"
    DEAD = "dead"


class DeathCause(Enum):
    """Why the body died"""
    GATE_COLLISION = "gate_collision"
    CEILING = "ceiling"


@dataclass
class LocomotionConfig:
    """Tunable parameters for the flying body"""
    ground_clearance: float = 0.05         # base height above the surface
    side_speed_deg: float = 90.0           # deg/s heading yaw at full strafe
    jump_height: float = 3.0               # apex height of a single flap
    gravity: float = 3.0                   # inward acceleration (magnitude)
    radial_damping: float = 1.5            # 1/s velocity damping
    max_altitude: float = 15.0             # ceiling above the base radius
    ceiling_grace: float = 0.15            # s above ceiling before death
    world_axis: np.ndarray = field(default_factory=lambda: WORLD_Z.copy())
    start_direction: np.ndarray = field(default_factory=lambda: WORLD_X.copy())

    def __post_init__(self):
        self.world_axis = np.asarray(self.world_axis, dtype=np.float64)
        self.start_direction = np.asarray(self.start_direction, dtype=np.float64)

        # Invalid values are clamped, never rejected
        for name in ('ground_clearance', 'jump_height', 'radial_damping',
                     'max_altitude', 'ceiling_grace', 'side_speed_deg'):
            value = getattr(self, name)
            if value < 0:
                logger.warning("%s %.3f < 0, clamping to 0", name, value)
                setattr(self, name, 0.0)
        if self.gravity < 0:
            logger.warning("gravity %.3f < 0, using its magnitude", self.gravity)
            self.gravity = abs(self.gravity)

    @property
    def flap_impulse(self) -> float:
        """Outward velocity added by one flap: v = sqrt(2 |g| h)"""
        return float(np.sqrt(2.0 * abs(self.gravity) * max(0.0, self.jump_height)))


@dataclass
class LocomotionState:
    """Mutable radial state, owned by the LocomotionBody"""
    altitude: float = 0.0                  # height above base radius
    radial_velocity: float = 0.0           # rate of altitude change
    alive: bool = True
    over_ceiling_timer: float = 0.0        # continuous time above ceiling

    def reset(self):
        self.altitude = 0.0
        self.radial_velocity = 0.0
        self.alive = True
        self.over_ceiling_timer = 0.0


class LocomotionBody:
    """
    The flying creature.

    Inputs (flap, strafe) are staged by a controller and consumed exactly
    once on the next tick. Death listeners are called once per death with
    the DeathCause.
    """

    def __init__(self,
                 planet: PlanetBody,
                 config: Optional[LocomotionConfig] = None):
        self.planet = planet
        self.config = config or LocomotionConfig()
        self.state = LocomotionState()

        # Pose
        direction = normalize(self.config.start_direction, fallback=WORLD_Z)
        self.position = self.planet.center + direction * self.base_radius
        self.forward = any_perpendicular(direction)

        # Staged inputs
        self._flap_requested = False
        self._strafe_input = 0.0

        self._death_listeners: List[Callable[[DeathCause], None]] = []
        self.death_cause: Optional[DeathCause] = None
        self.flap_count = 0

        self._snap_to_surface()
        self._align_to_surface()

    # ===== PROPERTIES =====

    @property
    def base_radius(self) -> float:
        """Radius of the body at zero altitude"""
        return self.planet.radius + self.config.ground_clearance

    @property
    def max_radius(self) -> float:
        """Radius of the ceiling"""
        return self.base_radius + self.config.max_altitude

    @property
    def is_alive(self) -> bool:
        return self.state.alive

    @property
    def body_state(self) -> BodyState:
        return BodyState.ALIVE if self.state.alive else BodyState.DEAD

    @property
    def altitude(self) -> float:
        return self.state.altitude

    @property
    def radial_velocity(self) -> float:
        return self.state.radial_velocity

    @property
    def normal(self) -> np.ndarray:
        """Radial outward unit vector at the body"""
        return normalize(self.position - self.planet.center, fallback=WORLD_Z)

    @property
    def right(self) -> np.ndarray:
        return normalize(np.cross(self.normal, self.forward))

    @property
    def orientation(self) -> np.ndarray:
        """3x3 orientation, columns (forward, right, up)"""
        return look_rotation(self.forward, self.normal)

    @property
    def radius(self) -> float:
        return float(np.linalg.norm(self.position - self.planet.center))

    # ===== INPUTS =====

    def request_flap(self):
        """Stage a flap for the next tick"""
        self._flap_requested = True

    def set_strafe(self, value: float):
        """Stage a strafe input in [-1, 1] for the next tick"""
        self._strafe_input = float(np.clip(value, -1.0, 1.0))

    def apply_controls(self, flap: bool, strafe: float):
        """Stage both inputs at once (overwrites anything staged)"""
        self._flap_requested = bool(flap)
        self.set_strafe(strafe)

    def add_death_listener(self, callback: Callable[[DeathCause], None]):
        self._death_listeners.append(callback)

    # ===== SIMULATION =====

    def tick(self, dt: float) -> dict:
        """
        Integrate one fixed timestep.

        Returns:
            Telemetry for this tick
        """
        flap = self._flap_requested
        strafe = self._strafe_input
        # Consumed once, no carry-over
        self._flap_requested = False
        self._strafe_input = 0.0

        if not self.state.alive:
            return self._telemetry(flapped=False)

        # 1. Lateral: yaw heading about the local normal
        n = self.normal
        side_angle = strafe * np.radians(self.config.side_speed_deg) * dt
        if abs(side_angle) > 0.0:
            self.forward = rotate_about_axis(self.forward, n, side_angle)

        # 2. Radial
        if flap:
            self.state.radial_velocity += self.config.flap_impulse
            self.flap_count += 1

        g = abs(self.config.gravity)
        self.state.radial_velocity -= g * dt
        self.state.altitude += self.state.radial_velocity * dt

        if self.state.altitude < 0.0:
            self.state.altitude = 0.0
            if self.state.radial_velocity < 0.0:
                self.state.radial_velocity = 0.0

        self.state.radial_velocity -= self.state.radial_velocity * self.config.radial_damping * dt

        # 3. Reposition and re-orient
        self._snap_to_surface()
        self._orient_to_heading()

        # 4. Ceiling
        if self.radius > self.max_radius:
            self.state.over_ceiling_timer += dt
            if self.state.over_ceiling_timer >= self.config.ceiling_grace:
                self.kill(DeathCause.CEILING)
        else:
            self.state.over_ceiling_timer = 0.0

        return self._telemetry(flapped=flap)

    def kill(self, cause: DeathCause) -> bool:
        """
        Transition to DEAD and notify listeners.

        Idempotent: killing a dead body does nothing.

        Returns:
            True if this call caused the death
        """
        if not self.state.alive:
            return False

        self.state.alive = False
        self.death_cause = cause
        logger.debug("Body died: %s at altitude %.2f", cause.value, self.state.altitude)

        for callback in list(self._death_listeners):
            callback(cause)
        return True

    def reset(self):
        """Restore the canonical start-of-episode state"""
        self.state.reset()
        self._flap_requested = False
        self._strafe_input = 0.0
        self.death_cause = None
        self.flap_count = 0

        self._snap_to_surface()
        self._align_to_surface()

        # Never start an episode above the ceiling
        radius = self.radius
        if radius > self.max_radius:
            logger.warning("Unsafe position after reset (r=%.2f > %.2f), re-clamping to surface",
                           radius, self.max_radius)
            self.position = self.planet.center + self.normal * self.base_radius

    # ===== INTERNAL =====

    def _snap_to_surface(self):
        """Place the body at base radius + altitude along its current direction"""
        direction = self.position - self.planet.center
        if float(np.dot(direction, direction)) < EPSILON:
            logger.warning("Body at planet centre, snapping along world axis")
            direction = self.config.world_axis
        direction = normalize(direction, fallback=WORLD_Z)
        self.position = self.planet.center + direction * (self.base_radius + self.state.altitude)

    def _align_to_surface(self):
        """Face along world_axis x normal, falling back to the old heading"""
        n = self.normal
        forward = np.cross(self.config.world_axis, n)
        if float(np.dot(forward, forward)) < EPSILON:
            forward = project_on_plane(self.forward, n)
        self.forward = normalize(forward, fallback=any_perpendicular(n))

    def _orient_to_heading(self):
        """Keep the heading tangent with up = normal"""
        n = self.normal
        forward = project_on_plane(self.forward, n)
        if float(np.dot(forward, forward)) < EPSILON:
            forward = any_perpendicular(n)
        self.forward = normalize(forward)

    def _telemetry(self, flapped: bool) -> dict:
        return {
            'altitude': self.state.altitude,
            'radial_velocity': self.state.radial_velocity,
            'alive': self.state.alive,
            'over_ceiling_timer': self.state.over_ceiling_timer,
            'flapped': flapped
        }
