"""
Planet Flap
===========
Spherical flight simulation and reinforcement-learning environment.

A creature flaps around a spinning planet, dodging procedurally spawned
gates. The physics core can be driven by a human, a scripted autopilot or
a Gymnasium agent.
"""

__version__ = "0.1.0"
__author__ = "Planet Flap Development Team"
