"""
Flight Controls
===============
Ways to drive the creature without a trained policy.

- HumanInput: keyboard-style input, edge-triggered flap and a
  dead-zoned horizontal axis
- heuristic_action: quantise raw input into an environment action
- AutopilotPolicy: hand-written controller that chases the next gate
"""

import numpy as np
from typing import Optional, Tuple

STRAFE_LEFT = 0
STRAFE_NONE = 1
STRAFE_RIGHT = 2

DEFAULT_DEADZONE = 0.2


def quantize_strafe(horizontal: float, deadzone: float = DEFAULT_DEADZONE) -> int:
    """Horizontal axis in [-1, 1] -> strafe action index"""
    if horizontal < -deadzone:
        return STRAFE_LEFT
    if horizontal > deadzone:
        return STRAFE_RIGHT
    return STRAFE_NONE


def heuristic_action(flap_pressed: bool,
                     horizontal: float,
                     deadzone: float = DEFAULT_DEADZONE) -> np.ndarray:
    """Environment action from raw human input"""
    return np.array([1 if flap_pressed else 0,
                     quantize_strafe(horizontal, deadzone)], dtype=np.int64)


class HumanInput:
    """
    Keyboard-style input state.

    A flap fires once per key press: holding the key does not repeat it.
    """

    def __init__(self, deadzone: float = DEFAULT_DEADZONE):
        self.deadzone = deadzone
        self.horizontal = 0.0
        self._flap_held = False
        self._flap_pending = False

    def press_flap(self):
        if not self._flap_held:
            self._flap_pending = True
        self._flap_held = True

    def release_flap(self):
        self._flap_held = False

    def set_horizontal(self, value: float):
        self.horizontal = float(np.clip(value, -1.0, 1.0))

    def action(self) -> np.ndarray:
        """Consume the pending flap and return an environment action"""
        flap = self._flap_pending
        self._flap_pending = False
        return heuristic_action(flap, self.horizontal, self.deadzone)


class AutopilotPolicy:
    """
    Simple gate-chasing controller.

    Holds the gap altitude of the next gate (or a cruise altitude with no
    gate ahead) by flapping whenever it is low and not already climbing,
    and turns toward the gap when it drifts sideways.
    """

    def __init__(self,
                 cruise_altitude: float = 3.75,
                 altitude_margin: float = 0.5,
                 lateral_margin: float = 0.5):
        self.cruise_altitude = cruise_altitude
        self.altitude_margin = altitude_margin
        self.lateral_margin = lateral_margin

    def decide(self,
               altitude: float,
               radial_velocity: float,
               target: Optional[Tuple[float, float, float]] = None) -> Tuple[bool, float]:
        """
        Args:
            altitude: Body altitude
            radial_velocity: Body radial velocity
            target: (along, lateral, radial_error) of the next gate, if any

        Returns:
            (flap, strafe)
        """
        desired = self.cruise_altitude
        strafe = 0.0
        if target is not None:
            _, lateral, radial_error = target
            desired = altitude + radial_error
            if lateral > self.lateral_margin:
                strafe = 1.0
            elif lateral < -self.lateral_margin:
                strafe = -1.0

        flap = altitude < desired - self.altitude_margin and radial_velocity <= 0.0
        return flap, strafe

    def act(self, obs: np.ndarray) -> np.ndarray:
        """Environment action from an observation vector"""
        altitude = float(obs[0]) * 15.0
        radial_velocity = float(obs[1]) * 5.0

        target = None
        # Alignment score is strictly positive whenever a gate is observed
        if float(obs[8]) > 0.0:
            target = (float(obs[3]) * 20.0, float(obs[4]) * 10.0, float(obs[5]) * 5.0)

        flap, strafe = self.decide(altitude, radial_velocity, target)
        return np.array([1 if flap else 0, int(round(strafe)) + 1], dtype=np.int64)

    def controls_for(self, sim) -> Tuple[bool, float]:
        """(flap, strafe) straight from a running simulation"""
        from .planet_env import gate_offset, nearest_gate_ahead

        frame = sim.frame()
        gate = nearest_gate_ahead(sim, frame)
        target = gate_offset(sim, gate, frame) if gate is not None else None
        return self.decide(sim.body.altitude, sim.body.radial_velocity, target)
