"""
Planet Flap - Main Simulation
=============================
Entry point for the spherical flight simulation.

A creature flaps around a small rotating planet while gates spawn ahead
of it. This module owns the world and advances every component in a
fixed order each tick:

1. Planet spin (publishes the spin axis)
2. Locomotion body (radial model, heading yaw, ceiling)
3. Gate lifetimes
4. Gate spawning
5. Gate contacts (collision / scoring)
"""

import copy
import logging
import numpy as np
import yaml
import time
from pathlib import Path
from typing import Callable, Dict, Optional

# Physics
from .physics import (
    PlanetBody, PlanetSpinner, SpinConfig,
    LocomotionBody, LocomotionConfig, DeathCause,
    compute_frame
)

# Entities
from .entities import (
    Gate, GateConfig, GateContact, GateRegistry,
    GateSpawner, SpawnerConfig
)

# Collaborators
from .collaborators import (
    SimulationMode, ControlMode,
    ANIM_FLY, ANIM_DEAD,
    create_collaborators
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "simulation_params.yaml"


def merge_config(base: Dict, override: Dict) -> Dict:
    """Recursively merge `override` into a copy of `base`"""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


class PlanetFlapSimulation:
    """
    Main simulation controller for the planet flight game.

    Orchestrates:
    - Planet spin and body integration
    - Gate lifetime, spawning and contacts
    - Score / scene / animation collaborators
    """

    def __init__(self,
                 config_path: Optional[str] = None,
                 config: Optional[Dict] = None,
                 mode: SimulationMode = SimulationMode.INTERACTIVE,
                 control: ControlMode = ControlMode.HUMAN,
                 seed: Optional[int] = None):
        # Load configuration
        self.config = self._default_config()
        if config_path:
            with open(config_path, 'r') as f:
                self.config = merge_config(self.config, yaml.safe_load(f) or {})
        if config:
            self.config = merge_config(self.config, config)

        self.mode = mode
        self.control = control

        # Planet and body
        planet_cfg = self.config['planet']
        self.planet = PlanetBody(
            radius=planet_cfg['radius'],
            center=np.array(planet_cfg['center'], dtype=np.float64)
        )
        self.body = LocomotionBody(self.planet, LocomotionConfig(**self.config['locomotion']))
        self.spinner = PlanetSpinner(self.planet, self.body, SpinConfig(**self.config['spin']))

        # Gates
        self.gate_config = GateConfig(**self.config['gates'])
        self.registry = GateRegistry()
        self.rng = np.random.default_rng(seed)
        self.spawner = GateSpawner(
            self.planet,
            self.body,
            self.spinner,
            self.registry,
            config=SpawnerConfig(**self.config['spawner']),
            gate_config=self.gate_config,
            rng=self.rng
        )

        # Collaborators
        self.score_display, self.scene, self.animator = create_collaborators(
            'headless',
            training_probe=self.is_training_active,
            restart_callback=self.reset_episode
        )
        self.body.add_death_listener(self._on_body_died)

        # Event hooks (the RL environment subscribes here)
        self.score_listeners = []
        self.death_listeners = []

        # Simulation state
        self.time = 0.0
        self.dt = self.config['simulation']['timestep']
        self.running = False
        self.total_scored = 0
        self._tick_deaths = []

        self.registry.clear()
        self.spawner.start()
        self._play_clip(ANIM_FLY)

    def _default_config(self) -> Dict:
        """Default configuration if no file provided"""
        return {
            'planet': {
                'radius': 25.0,
                'center': [0.0, 0.0, 0.0]
            },
            'locomotion': {
                'ground_clearance': 0.05,
                'side_speed_deg': 90.0,
                'jump_height': 3.0,
                'gravity': 3.0,
                'radial_damping': 1.5,
                'max_altitude': 15.0,
                'ceiling_grace': 0.15,
                'world_axis': [0.0, 0.0, 1.0],
                'start_direction': [1.0, 0.0, 0.0]
            },
            'spin': {
                'angular_speed_deg': 4.0
            },
            'spawner': {
                'enabled': True,
                'spawn_interval': 5.0,
                'burst_per_interval': 1,
                'spawn_on_start': True,
                'ahead_angle_deg': 25.0,
                'min_side_angle_deg': 10.0,
                'max_side_angle_deg': 25.0,
                'altitude_offset': 0.05,
                'gap_altitude_bands': [2.0, 3.75, 6.0],
                'world_axis': [0.0, 0.0, 1.0]
            },
            'gates': {
                'lifetime': 12.0,
                'half_width': 1.5,
                'half_thickness': 0.75,
                'gap_half_height': 2.0
            },
            'simulation': {
                'timestep': 0.02,
                'duration': 30.0
            }
        }

    # ===== MODE =====

    def is_training_active(self) -> bool:
        return self.mode == SimulationMode.TRAINING

    @property
    def is_ai_controlled(self) -> bool:
        return self.control == ControlMode.AI

    def _presentation_enabled(self) -> bool:
        """Animation only plays for a human player outside training"""
        return not self.is_training_active() and not self.is_ai_controlled

    def _play_clip(self, clip: str):
        """Clips mark alive / dead transitions, never individual flaps"""
        if self._presentation_enabled():
            self.animator.play(clip)

    # ===== SIMULATION =====

    def tick(self, dt: Optional[float] = None) -> Dict:
        """
        Execute one fixed simulation timestep.

        Returns telemetry, including the gate events of this tick.
        """
        dt = self.dt if dt is None else dt
        self._tick_deaths = []

        # 1. Spin the planet under the body
        spun = self.spinner.tick(dt)

        # 2. Integrate the body
        body_telemetry = self.body.tick(dt)

        # 3. Gate lifetimes
        expired = self.registry.tick(dt)

        # 4. Spawning
        spawned = self.spawner.tick(dt)

        # 5. Gate contacts
        scored = self._resolve_contacts()

        self.time += dt

        return {
            'time': self.time,
            'body': body_telemetry,
            'spun': spun,
            'gates': len(self.registry),
            'spawned': [gate.gate_id for gate in spawned],
            'expired': expired,
            'scored': scored,
            'died': bool(self._tick_deaths),
            'death_cause': self._tick_deaths[0] if self._tick_deaths else None,
            'score': self.score_display.score
        }

    def _resolve_contacts(self) -> int:
        """Test the body against every live gate. Returns gates scored."""
        scored = 0
        if not self.body.is_alive:
            return scored

        for gate in self.registry:
            contact = gate.check_contact(self.planet, self.body.position, self.gate_config)
            if contact == GateContact.COLLISION:
                self.body.kill(DeathCause.GATE_COLLISION)
                break
            if contact == GateContact.SCORED:
                scored += 1
                self._on_gate_scored(gate)
        return scored

    def _on_gate_scored(self, gate: Gate):
        self.total_scored += 1
        self.score_display.add_score(1)
        logger.debug("Gate %d passed (score %d)", gate.gate_id, self.score_display.score)
        for callback in list(self.score_listeners):
            callback(gate)

    def _on_body_died(self, cause: DeathCause):
        self._tick_deaths.append(cause)
        logger.info("Body died (%s) at T=%.2fs, score %d",
                    cause.value, self.time, self.score_display.score)

        self._play_clip(ANIM_DEAD)
        if not self.is_training_active():
            self.scene.game_over(self.is_ai_controlled)

        for callback in list(self.death_listeners):
            callback(cause)

    # ===== EPISODES =====

    def reset_episode(self, spawn_initial: bool = True):
        """
        Restore the canonical start state.

        Clears every gate, resets the body, the planet rotation and the
        spawner, then spawns the opening gate if configured.
        """
        self.registry.clear()
        self.planet.reset_rotation()
        self.body.reset()
        self.spinner.reset()
        self.spawner.reset()
        self.score_display.reset()
        self.time = 0.0
        self._tick_deaths = []
        if spawn_initial:
            self.spawner.start()
        self._play_clip(ANIM_FLY)

    def restart_game(self) -> bool:
        """
        Restart after death (the "play again" path).

        Ignored while training and while the body is still alive.
        """
        if self.is_training_active() or self.body.is_alive:
            return False
        return self.scene.restart_game()

    def apply_controls(self, flap: bool, strafe: float):
        """Stage controller input on the body for the next tick"""
        self.body.apply_controls(flap, strafe)

    def frame(self):
        """Tangent frame at the body for the current spin axis"""
        return compute_frame(self.body.position, self.planet.center,
                             self.spinner.current_axis, self.body.forward)

    def place_gate_relative(self,
                            along: float,
                            lateral: float = 0.0,
                            radial_error: float = 0.0) -> Gate:
        """
        Place a gate whose gap centre sits at a given offset from the body.

        Args:
            along: Distance ahead along the heading
            lateral: Offset toward the body's right
            radial_error: Offset along the body's normal
        """
        frame = self.frame()
        target = (self.body.position
                  + frame.forward * along
                  + frame.right * lateral
                  + frame.normal * radial_error)

        up = target - self.planet.center
        distance = float(np.linalg.norm(up))
        up = up / (distance + 1e-9)

        anchor_radius = self.planet.radius + self.spawner.config.altitude_offset
        anchor = self.planet.center + up * anchor_radius
        return self.spawner.place_gate(anchor, center_offset=distance - anchor_radius)

    # ===== RUN LOOP =====

    def run(self,
            duration: Optional[float] = None,
            controller: Optional[Callable] = None,
            callback: Optional[Callable] = None,
            camera=None):
        """
        Run simulation for specified duration.

        Args:
            duration: Simulation time in seconds (default from config)
            controller: Optional function sim -> (flap, strafe), called each tick
            callback: Optional function called each step with telemetry
            camera: Optional FollowCamera updated each step
        """
        if duration is None:
            duration = self.config['simulation']['duration']

        self.running = True
        start_time = time.time()

        print(f"Starting Planet Flap Simulation - Duration: {duration}s")
        print("=" * 50)

        while self.time < duration and self.running:
            if controller is not None:
                flap, strafe = controller(self)
                self.apply_controls(flap, strafe)

            telemetry = self.tick()

            if camera is not None:
                camera.update(self.dt, self.body.position, self.body.forward, self.body.normal)

            if callback:
                callback(telemetry)

            # Progress update every second
            if int(self.time) != int(self.time - self.dt):
                self._print_status(telemetry)

            if telemetry['died']:
                print(f"Died: {telemetry['death_cause'].value} at T={self.time:.2f}s")
                self.running = False

        real_time = time.time() - start_time
        print("=" * 50)
        print(f"Simulation complete. Sim time: {self.time:.2f}s, Real time: {real_time:.2f}s")
        print(f"Score: {self.score_display.score} | Flaps: {self.body.flap_count}")

    def _print_status(self, telemetry: Dict):
        """Print compact status line"""
        body = telemetry['body']
        print(f"T={self.time:6.1f}s | "
              f"Alt: {body['altitude']:5.2f} | "
              f"Vr: {body['radial_velocity']:+5.2f} | "
              f"Gates: {telemetry['gates']} | "
              f"Score: {telemetry['score']}")


def demo_autopilot():
    """
    Demonstration: autopilot flight through spawned gates.
    """
    from .training.controls import AutopilotPolicy
    from .visualization import FollowCamera

    print("\n" + "=" * 60)
    print("DEMO: AUTOPILOT")
    print("=" * 60 + "\n")

    sim = PlanetFlapSimulation(control=ControlMode.AI, seed=0)
    pilot = AutopilotPolicy()
    sim.run(duration=30.0, controller=pilot.controls_for, camera=FollowCamera())


def demo_freefall():
    """
    Demonstration: no input, the creature settles on the surface.
    """
    print("\n" + "=" * 60)
    print("DEMO: FREEFALL")
    print("=" * 60 + "\n")

    sim = PlanetFlapSimulation(config={'spawner': {'enabled': False}})
    sim.body.apply_controls(True, 0.0)
    for _ in range(250):
        telemetry = sim.tick()
        if int(sim.time * 50) % 25 == 0:
            print(f"  T={sim.time:.1f}s - Alt: {telemetry['body']['altitude']:.3f}")

    print(f"\nFinal altitude: {sim.body.altitude:.3f}")


if __name__ == "__main__":
    import sys

    if len(sys.argv) > 1:
        if sys.argv[1] == "autopilot":
            demo_autopilot()
        elif sys.argv[1] == "freefall":
            demo_freefall()
        else:
            print("Unknown demo. Options: 'autopilot', 'freefall'")
    else:
        if DEFAULT_CONFIG_PATH.exists():
            sim = PlanetFlapSimulation(str(DEFAULT_CONFIG_PATH))
        else:
            sim = PlanetFlapSimulation()

        # No input: runs until the first gate is reached or time is up
        sim.run(duration=10.0)
