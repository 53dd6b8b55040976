"""Core module: Four-vectors, particle species, configuration."""

from coalescence.core.vectors import ThreeVector, FourVector
from coalescence.core.particle import (Particle, ParticleType, NucleusType,
                                       pdg_to_type, claim)
from coalescence.core.config import CoalescenceConfig, HBARC

__all__ = ["ThreeVector", "FourVector", "Particle", "ParticleType", "NucleusType",
           "pdg_to_type", "claim", "CoalescenceConfig", "HBARC"]
