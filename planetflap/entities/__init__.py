"""
Entities Module
===============
Objects that live on the planet.

- Gate: Pipe pair with a gap, scored by flying through it
- GateRegistry: Arena of live gates keyed by stable ids
- GateSpawner: Procedural gate placement ahead of the body
"""

from .gate import Gate, GateConfig, GateContact, GateRegistry
from .spawner import GateSpawner, SpawnerConfig

__all__ = [
    'Gate',
    'GateConfig',
    'GateContact',
    'GateRegistry',
    'GateSpawner',
    'SpawnerConfig'
]
