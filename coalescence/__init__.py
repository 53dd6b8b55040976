"""
coalescence: light-nuclei afterburner for SMASH heavy-ion simulations

Reads final-state hadrons from SMASH extended binary output and forms
deuterons, tritons and He-3 (and antinuclei) by phase-space coalescence.

Modules:
    core: Four-vectors, particle species, configuration
    io: SMASH binary reader, nuclei text output
    physics: Vicinity test, deuteron Wigner function
    engine: Coalescence engine and file driver
    scoring: Rapidity histograms
"""

__version__ = "0.1.0"

from coalescence.core.vectors import ThreeVector, FourVector
from coalescence.core.particle import Particle, ParticleType, NucleusType
from coalescence.core.config import CoalescenceConfig
from coalescence.io.binary_reader import BinaryReader, FormatError
from coalescence.engine.coalescer import Coalescence, Channel
from coalescence.scoring.histograms import RapidityHistograms

__all__ = [
    "ThreeVector",
    "FourVector",
    "Particle",
    "ParticleType",
    "NucleusType",
    "CoalescenceConfig",
    "BinaryReader",
    "FormatError",
    "Coalescence",
    "Channel",
    "RapidityHistograms",
]
