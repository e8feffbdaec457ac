"""
Gate Entity
===========
Obstacle gates and the registry that indexes them.

A gate is a pipe pair standing on the planet with a gap between the lower
and upper pipe. The body scores by crossing the gate plane inside the gap
and dies by touching a pipe:

          |   |
          |   |   <- upper pipe
          +---+
                  <- gap (gap_half_height above and below the centre)
          +---+
          |   |   <- lower pipe
    ======|===|======  planet surface

Gates are stored in planet-local coordinates so they ride the spinning
planet. The registry is an arena keyed by stable integer ids; it never
owns gate lifetime semantics beyond removing dead entries.
"""

import threading
import numpy as np
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple
from enum import Enum

from ..physics.frame import normalize, look_rotation
from ..physics.planet_spin import PlanetBody


class GateContact(Enum):
    """Result of testing the body against a gate"""
    NONE = "none"
    COLLISION = "collision"
    SCORED = "scored"


@dataclass
class GateConfig:
    """Gate dimensions and lifetime"""
    lifetime: float = 12.0                 # s before despawn
    half_width: float = 1.5                # lateral half extent of the pipes
    half_thickness: float = 0.75           # half depth along the gate forward
    gap_half_height: float = 2.0           # half height of the opening

    def __post_init__(self):
        self.lifetime = max(0.0, self.lifetime)
        self.half_width = max(0.0, self.half_width)
        self.half_thickness = max(0.0, self.half_thickness)
        self.gap_half_height = max(0.0, self.gap_half_height)


@dataclass
class Gate:
    """A single obstacle gate, posed in planet-local coordinates"""
    gate_id: int
    local_position: np.ndarray             # anchor on/near the surface
    local_up: np.ndarray                   # radial at the anchor
    local_forward: np.ndarray              # tangent, toward the body at spawn
    center_offset: float = 0.0             # gap centre above the anchor
    lifetime: float = 12.0
    age: float = 0.0
    alive: bool = True
    scored: bool = False
    last_forward_offset: Optional[float] = None

    @property
    def expired(self) -> bool:
        return self.age >= self.lifetime

    def world_position(self, planet: PlanetBody) -> np.ndarray:
        return planet.to_world(self.local_position)

    def world_up(self, planet: PlanetBody) -> np.ndarray:
        return planet.direction_to_world(self.local_up)

    def world_forward(self, planet: PlanetBody) -> np.ndarray:
        return planet.direction_to_world(self.local_forward)

    def world_right(self, planet: PlanetBody) -> np.ndarray:
        return normalize(np.cross(self.world_up(planet), self.world_forward(planet)))

    def world_orientation(self, planet: PlanetBody) -> np.ndarray:
        """3x3 orientation, columns (forward, right, up)"""
        return look_rotation(self.world_forward(planet), self.world_up(planet))

    def center(self, planet: PlanetBody) -> np.ndarray:
        """World position of the gap centre (the targeting anchor)"""
        return self.world_position(planet) + self.world_up(planet) * self.center_offset

    def offset_in_gate_frame(self, planet: PlanetBody, point: np.ndarray) -> Tuple[float, float, float]:
        """
        Offset of a world point from the gap centre in the gate's frame.

        Returns:
            (d_forward, d_right, d_up)
        """
        rel = np.asarray(point, dtype=np.float64) - self.center(planet)
        return (float(np.dot(rel, self.world_forward(planet))),
                float(np.dot(rel, self.world_right(planet))),
                float(np.dot(rel, self.world_up(planet))))

    def check_contact(self,
                      planet: PlanetBody,
                      point: np.ndarray,
                      config: GateConfig) -> GateContact:
        """
        Test the body position against this gate.

        Collision: inside the pipe slab laterally and in depth, but outside
        the gap vertically. Scoring: the forward offset flips from positive
        to non-positive while inside the gap. A gate scores at most once.
        """
        d_forward, d_right, d_up = self.offset_in_gate_frame(planet, point)
        previous = self.last_forward_offset
        self.last_forward_offset = d_forward

        within_width = abs(d_right) <= config.half_width
        within_gap = abs(d_up) <= config.gap_half_height

        if within_width and not within_gap and abs(d_forward) <= config.half_thickness:
            return GateContact.COLLISION

        crossed = previous is not None and previous > 0.0 and d_forward <= 0.0
        if crossed and within_width and within_gap and not self.scored:
            self.scored = True
            return GateContact.SCORED

        return GateContact.NONE


class GateRegistry:
    """
    Arena of live gates keyed by stable ids.

    Iteration always goes over a snapshot, so gates may be destroyed while
    a query is scanning. Mutation and snapshotting share one lock so a
    reset cannot race a targeting query.
    """

    def __init__(self):
        self._gates: Dict[int, Gate] = {}
        self._next_id = 1
        self._lock = threading.RLock()

        # Statistics
        self.total_created = 0
        self.total_expired = 0

    def create(self,
               local_position: np.ndarray,
               local_up: np.ndarray,
               local_forward: np.ndarray,
               center_offset: float = 0.0,
               lifetime: float = 12.0) -> Gate:
        """Allocate an id and register a new gate"""
        with self._lock:
            gate = Gate(
                gate_id=self._next_id,
                local_position=np.array(local_position, dtype=np.float64),
                local_up=normalize(local_up),
                local_forward=normalize(local_forward),
                center_offset=float(center_offset),
                lifetime=float(lifetime)
            )
            self._gates[gate.gate_id] = gate
            self._next_id += 1
            self.total_created += 1
            return gate

    def get(self, gate_id: int) -> Optional[Gate]:
        with self._lock:
            return self._gates.get(gate_id)

    def destroy(self, gate_id: int) -> bool:
        """
        Destroy a gate and drop its entry.

        Returns:
            False if the id was not registered
        """
        with self._lock:
            gate = self._gates.pop(gate_id, None)
            if gate is None:
                return False
            gate.alive = False
            return True

    def clear(self) -> int:
        """Destroy every gate. Returns the number destroyed."""
        with self._lock:
            gates = list(self._gates.values())
            for gate in gates:
                gate.alive = False
            self._gates.clear()
            return len(gates)

    def snapshot(self) -> Tuple[Gate, ...]:
        """Stable view of the live gates for a single query"""
        with self._lock:
            return tuple(self._gates.values())

    def tick(self, dt: float) -> List[int]:
        """
        Age every gate and destroy the expired ones.

        Returns:
            Ids of gates destroyed this tick
        """
        expired = []
        for gate in self.snapshot():
            gate.age += dt
            if gate.expired and self.destroy(gate.gate_id):
                expired.append(gate.gate_id)
        self.total_expired += len(expired)
        return expired

    def __len__(self) -> int:
        with self._lock:
            return len(self._gates)

    def __contains__(self, item) -> bool:
        gate_id = item.gate_id if isinstance(item, Gate) else item
        with self._lock:
            return gate_id in self._gates

    def __iter__(self) -> Iterator[Gate]:
        return iter(self.snapshot())
