"""
Gate Spawner
============
Procedural placement of gates ahead of the flying body.

Placement, in the tangent frame at the body:

    1. ahead  = rotate(normal, right, ahead_angle)      (arc ahead)
    2. final  = rotate(ahead, normal, +/- side_angle)   (off-centre)
    3. anchor = centre + final * (planet_radius + altitude_offset)
    4. up = final, forward = tangent back toward the body

The gap altitude is drawn from a small set of bands on every spawn, so
the approach geometry keeps changing and an agent cannot overfit to one
height.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..physics.frame import (
    EPSILON,
    WORLD_Z,
    normalize,
    project_on_plane,
    rotate_about_axis,
    compute_frame
)
from ..physics.planet_spin import PlanetBody, PlanetSpinner
from .gate import Gate, GateConfig, GateRegistry

logger = logging.getLogger(__name__)


@dataclass
class SpawnerConfig:
    """
    Gate spawning parameters.

    Placement always starts from the body's own tangent frame, so there are
    no fixed latitude bands. Spawns vary by the random side angle and by
    `gap_altitude_bands`: the gap centre is lifted by one of these heights
    above the anchor, which changes the approach altitude from gate to gate.
    """
    enabled: bool = True
    spawn_interval: float = 5.0            # s between bursts
    burst_per_interval: int = 1            # gates per burst
    spawn_on_start: bool = True            # one gate when the spawner starts

    ahead_angle_deg: float = 25.0          # arc ahead of the body
    min_side_angle_deg: float = 10.0       # lateral offset range (unsigned)
    max_side_angle_deg: float = 25.0

    altitude_offset: float = 0.05          # anchor height above the surface
    gap_altitude_bands: Tuple[float, ...] = (2.0, 3.75, 6.0)
    world_axis: np.ndarray = field(default_factory=lambda: WORLD_Z.copy())

    def __post_init__(self):
        self.world_axis = np.asarray(self.world_axis, dtype=np.float64)
        self.gap_altitude_bands = tuple(float(b) for b in self.gap_altitude_bands) or (0.0,)
        if self.spawn_interval <= 0:
            logger.warning("spawn_interval %.3f <= 0, clamping to 0.1", self.spawn_interval)
            self.spawn_interval = 0.1
        self.burst_per_interval = max(0, int(self.burst_per_interval))
        if self.min_side_angle_deg > self.max_side_angle_deg:
            self.min_side_angle_deg, self.max_side_angle_deg = (
                self.max_side_angle_deg, self.min_side_angle_deg)


class GateSpawner:
    """
    Timer-driven gate spawner.

    Accumulates time; every `spawn_interval` it places
    `burst_per_interval` gates ahead of the body and registers them.
    """

    def __init__(self,
                 planet: PlanetBody,
                 body,
                 spinner: PlanetSpinner,
                 registry: GateRegistry,
                 config: Optional[SpawnerConfig] = None,
                 gate_config: Optional[GateConfig] = None,
                 rng: Optional[np.random.Generator] = None):
        self.planet = planet
        self.body = body
        self.spinner = spinner
        self.registry = registry
        self.config = config or SpawnerConfig()
        self.gate_config = gate_config or GateConfig()
        self.rng = rng if rng is not None else np.random.default_rng()

        self.timer = 0.0
        self.spawn_count = 0

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @enabled.setter
    def enabled(self, value: bool):
        self.config.enabled = bool(value)

    @property
    def spawn_interval(self) -> float:
        return self.config.spawn_interval

    @spawn_interval.setter
    def spawn_interval(self, value: float):
        self.config.spawn_interval = max(0.1, float(value))

    def start(self) -> List[Gate]:
        """Spawn the opening gate, if configured"""
        if self.config.enabled and self.config.spawn_on_start:
            return [self.spawn_one()]
        return []

    def reset(self):
        self.timer = 0.0

    def tick(self, dt: float) -> List[Gate]:
        """
        Advance the spawn timer.

        Returns:
            Gates spawned this tick
        """
        if not self.config.enabled:
            return []

        self.timer += dt
        if self.timer < self.config.spawn_interval:
            return []

        spawned = [self.spawn_one() for _ in range(self.config.burst_per_interval)]
        self.timer = 0.0
        return spawned

    def spawn_one(self) -> Gate:
        """Place a single gate ahead of the body"""
        frame = compute_frame(self.body.position,
                              self.planet.center,
                              self.spinner.current_axis,
                              self.body.forward)

        # Ahead along the direction of travel
        ahead_dir = normalize(rotate_about_axis(
            frame.normal, frame.right, np.radians(self.config.ahead_angle_deg)))

        # Off-centre: random sign, random magnitude
        sign = -1.0 if self.rng.random() < 0.5 else 1.0
        side_deg = sign * self.rng.uniform(self.config.min_side_angle_deg,
                                           self.config.max_side_angle_deg)
        final_dir = normalize(rotate_about_axis(ahead_dir, frame.normal, np.radians(side_deg)))

        radius = self.planet.radius + self.config.altitude_offset
        anchor = self.planet.center + final_dir * radius
        gap_altitude = float(self.rng.choice(self.config.gap_altitude_bands))

        gate = self.place_gate(anchor, center_offset=gap_altitude)
        self.spawn_count += 1
        logger.debug("Spawned gate %d (side %.1f deg, gap %.2f)",
                     gate.gate_id, side_deg, gap_altitude)
        return gate

    def place_gate(self, anchor: np.ndarray, center_offset: float = 0.0) -> Gate:
        """
        Register a gate at a world anchor, upright and facing the body.

        Args:
            anchor: World position of the gate anchor
            center_offset: Gap centre height above the anchor
        """
        up = normalize(anchor - self.planet.center, fallback=WORLD_Z)

        forward = project_on_plane(self.body.position - anchor, up)
        if float(np.dot(forward, forward)) < EPSILON:
            forward = np.cross(self.config.world_axis, up)
        forward = normalize(forward)

        return self.registry.create(
            local_position=self.planet.to_local(anchor),
            local_up=self.planet.direction_to_local(up),
            local_forward=self.planet.direction_to_local(forward),
            center_offset=center_offset,
            lifetime=self.gate_config.lifetime
        )
