"""
Visualization Module
====================
Presentation helpers for the Planet Flap simulation. Rendering itself
lives outside the package; only camera math is provided here.
"""

from .follow_camera import FollowCamera, CameraState

__all__ = ['FollowCamera', 'CameraState']
