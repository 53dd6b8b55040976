"""
Particle species and per-event particle state.

Hadrons are classified into the handful of species relevant for
coalescence; everything else is 'boring' and dropped at read time.
Nuclei are Particles carrying a NucleusType.
"""

import enum
import math
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union

from coalescence.core.vectors import FourVector


# ParticleType and NucleusType members share dict keys (PDG_CODES, engine
# pools), so their integer values must never overlap: hadrons < 100,
# nuclei >= 100.

class ParticleType(enum.IntEnum):
    """Hadron species taking part in coalescence."""
    boring = 0  # not interesting for coalescence
    p = 1       # proton
    n = 2       # neutron
    la = 3      # lambda
    s0 = 4      # sigma0
    ap = 5      # anti-proton
    an = 6      # anti-neutron
    ala = 7     # anti-lambda
    as0 = 8     # anti-sigma0


class NucleusType(enum.IntEnum):
    """Coalescence products."""
    d = 101
    t = 102
    He3 = 103
    H3L = 104   # hypertriton
    He4 = 105
    anti_d = 111
    anti_t = 112
    anti_He3 = 113
    anti_H3L = 114
    anti_He4 = 115


# Species -> PDG code
PDG_CODES = {
    ParticleType.p: 2212,
    ParticleType.n: 2112,
    ParticleType.la: 3122,
    ParticleType.s0: 3212,
    ParticleType.ap: -2212,
    ParticleType.an: -2112,
    ParticleType.ala: -3122,
    ParticleType.as0: -3212,
    NucleusType.d: 1000010020,
    NucleusType.t: 1000010030,
    NucleusType.He3: 1000020030,
    NucleusType.H3L: 1010010030,
    NucleusType.He4: 1000020040,
    NucleusType.anti_d: -1000010020,
    NucleusType.anti_t: -1000010030,
    NucleusType.anti_He3: -1000020030,
    NucleusType.anti_H3L: -1010010030,
    NucleusType.anti_He4: -1000020040,
}

# PDG code -> hadron species; anything missing is boring
DEFAULT_PDG_TABLE: Dict[int, ParticleType] = {
    pdg: species for species, pdg in PDG_CODES.items()
    if isinstance(species, ParticleType)
}


def pdg_to_type(pdg: int, table: Optional[Dict[int, ParticleType]] = None) -> ParticleType:
    """
    Classify a PDG code.

    Parameters:
        pdg: PDG particle code
        table: Mapping PDG code -> ParticleType (DEFAULT_PDG_TABLE if None)

    Returns:
        ParticleType, ParticleType.boring for unknown codes
    """
    if table is None:
        table = DEFAULT_PDG_TABLE
    return table.get(int(pdg), ParticleType.boring)


Species = Union[ParticleType, NucleusType]


@dataclass(eq=False)
class Particle:
    """
    Hadron or nucleus within one event.

    Parameters:
        momentum: (E, px, py, pz) [GeV]
        origin: (t, x, y, z) of the last interaction [fm/c, fm]
        type: ParticleType for hadrons, NucleusType for nuclei
        pdg_mother1, pdg_mother2: PDG codes of the incoming particles of
            the process that produced this one (0, 0 for untouched
            initial-state nucleons)
        weight: Statistical weight
        valid: Cleared once consumed into a cluster
        constituents: Hadrons a nucleus is made of (empty for hadrons)
    """
    momentum: FourVector
    origin: FourVector
    type: Species
    pdg_mother1: int = 0
    pdg_mother2: int = 0
    weight: float = 1.0
    valid: bool = True
    constituents: Tuple['Particle', ...] = field(default=(), repr=False)

    @property
    def pdg(self) -> int:
        return PDG_CODES.get(self.type, 0)

    @property
    def is_nucleus(self) -> bool:
        return isinstance(self.type, NucleusType)

    @property
    def pt(self) -> float:
        return math.hypot(self.momentum.x1, self.momentum.x2)

    def hadrons(self) -> Tuple['Particle', ...]:
        """Hadron-level constituents (the particle itself for a hadron)."""
        if not self.constituents:
            return (self,)
        return tuple(h for c in self.constituents for h in c.hadrons())

    def rapidity(self) -> float:
        """
        Longitudinal rapidity y = 0.5 * ln((E + pz) / (E - pz)).

        Raises ValueError when E <= |pz|.
        """
        E = self.momentum.x0
        pz = self.momentum.x3
        if E <= abs(pz):
            raise ValueError(f"Rapidity undefined for E={E}, pz={pz}")
        return 0.5 * math.log((E + pz) / (E - pz))

    def is_spectator(self) -> bool:
        """
        Never interacted: no mothers and no transverse momentum.

        Zero mother codes alone are not enough, particles from a
        hydrodynamic stage also carry them.
        """
        return (self.pdg_mother1 == 0 and self.pdg_mother2 == 0 and
                self.momentum.x1 == 0.0 and self.momentum.x2 == 0.0)


def claim(*particles: Particle) -> bool:
    """
    Consume particles into a cluster.

    Returns:
        False (and changes nothing) if any of them is already consumed,
        True after marking all of them consumed
    """
    if not all(p.valid for p in particles):
        return False
    for p in particles:
        p.valid = False
    return True
