"""
Planet Flap Collaborator Interface
==================================

Narrow contracts for everything outside the simulation core.
Swap between headless and presentation-layer implementations without
touching physics or the environment.

Collaborators:
- ScoreDisplay - Score counter / UI text
- SceneController - Game-over screen and restart flow
- Animator - "Fly" / "Dead" clips on the creature

Every collaborator receives a `training_probe` callable so it can behave
differently while an agent is training (no game-over screen, no restart,
no animation).

Usage:
    from planetflap.collaborators import create_collaborators

    score, scene, animator = create_collaborators('headless', probe)
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class SimulationMode(Enum):
    """Whether an agent is training or someone is playing"""
    TRAINING = "training"
    INTERACTIVE = "interactive"


class ControlMode(Enum):
    """Who drives the creature"""
    HUMAN = "human"
    AI = "ai"


ANIM_FLY = "Fly"
ANIM_DEAD = "Dead"


def _never_training() -> bool:
    return False


# =============================================================================
# CONTRACTS
# =============================================================================

class ScoreDisplay(ABC):
    """Abstract score counter."""

    @abstractmethod
    def add_score(self, amount: int = 1):
        """Add to the score (ignored while game over is shown)."""
        pass

    @abstractmethod
    def reset(self):
        pass

    @property
    @abstractmethod
    def score(self) -> int:
        pass


class SceneController(ABC):
    """Abstract game-over / restart flow."""

    @abstractmethod
    def game_over(self, is_ai_controlled: bool):
        """Show the game-over state."""
        pass

    @abstractmethod
    def restart_game(self) -> bool:
        """Reload the scene. No-op under training."""
        pass

    @property
    @abstractmethod
    def game_over_active(self) -> bool:
        pass


class Animator(ABC):
    """Abstract animation player."""

    @abstractmethod
    def play(self, clip: str):
        pass


# =============================================================================
# HEADLESS IMPLEMENTATIONS
# =============================================================================

class HeadlessScene(SceneController):
    """Scene with no display: tracks game-over and restart requests."""

    def __init__(self,
                 training_probe: Callable[[], bool] = _never_training,
                 restart_callback: Optional[Callable[[], None]] = None):
        self.training_probe = training_probe
        self.restart_callback = restart_callback
        self._game_over = False
        self.last_ai_controlled = False
        self.restart_count = 0

    @property
    def game_over_active(self) -> bool:
        return self._game_over

    def game_over(self, is_ai_controlled: bool):
        if self.training_probe():
            return
        self._game_over = True
        self.last_ai_controlled = bool(is_ai_controlled)
        print(f"[Headless] Game over ({'AI' if is_ai_controlled else 'human'})")

    def restart_game(self) -> bool:
        if self.training_probe():
            logger.debug("Restart ignored while training")
            return False
        self._game_over = False
        self.restart_count += 1
        if self.restart_callback is not None:
            self.restart_callback()
        return True


class HeadlessScoreboard(ScoreDisplay):
    """Score counter that freezes once the scene shows game over."""

    def __init__(self,
                 scene: Optional[SceneController] = None,
                 training_probe: Callable[[], bool] = _never_training):
        self.scene = scene
        self.training_probe = training_probe
        self._score = 0

    @property
    def score(self) -> int:
        return self._score

    def add_score(self, amount: int = 1):
        if self.scene is not None and self.scene.game_over_active:
            return
        self._score += amount

    def reset(self):
        self._score = 0


class RecordingAnimator(Animator):
    """Animator that records the clips it was asked to play."""

    def __init__(self, training_probe: Callable[[], bool] = _never_training):
        self.training_probe = training_probe
        self.played: List[str] = []

    def play(self, clip: str):
        self.played.append(clip)

    @property
    def last_clip(self) -> Optional[str]:
        return self.played[-1] if self.played else None


# Registry of available collaborator sets
COLLABORATORS = {
    'headless': (HeadlessScoreboard, HeadlessScene, RecordingAnimator),
}


def create_collaborators(kind: str = 'headless',
                         training_probe: Callable[[], bool] = _never_training,
                         restart_callback: Optional[Callable[[], None]] = None
                         ) -> Tuple[ScoreDisplay, SceneController, Animator]:
    """
    Factory for a matched collaborator set.

    Args:
        kind: Collaborator family name
        training_probe: Returns True while an agent is training
        restart_callback: Called by the scene when a restart goes through

    Returns:
        (score_display, scene_controller, animator)
    """
    kind = kind.lower()
    if kind not in COLLABORATORS:
        available = ', '.join(COLLABORATORS.keys())
        raise ValueError(f"Unknown collaborators: {kind}. Available: {available}")

    score_cls, scene_cls, animator_cls = COLLABORATORS[kind]
    scene = scene_cls(training_probe=training_probe, restart_callback=restart_callback)
    score = score_cls(scene=scene, training_probe=training_probe)
    animator = animator_cls(training_probe=training_probe)
    return score, scene, animator
