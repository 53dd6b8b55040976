"""
Coalescence engine: turn the hadrons of an event into light nuclei.

Two models:
    - fixed probability: phase-space cuts (deltap, deltar) plus a
      spin/isospin acceptance probability, with exclusive use of each
      particle. Nuclei are built in stages through a channel table
      (p + n -> d, then d + p -> He-3, d + n -> t, ...).
    - probabilistic: every nucleon pair gets a continuous weight from
      the deuteron Wigner function; particles are shared between pairs
      and the weights carry the occupation probability.
"""

import numpy as np
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from tqdm import tqdm

from coalescence.core.config import CoalescenceConfig, HBARC
from coalescence.core.particle import (Particle, ParticleType, NucleusType, Species,
                                       DEFAULT_PDG_TABLE, claim)
from coalescence.core.vectors import FourVector
from coalescence.io.binary_reader import BinaryReader
from coalescence.io.nuclei_writer import NucleiWriter
from coalescence.physics.vicinity import in_vicinity, cluster_origin
from coalescence.physics.wigner import pair_weights
from coalescence.scoring.histograms import RapidityHistograms


@dataclass(frozen=True)
class Channel:
    """
    Formation channel a + b -> product.

    probability is the spin/isospin factor the candidate pair has to
    pass on top of the phase-space cuts.
    """
    product: NucleusType
    inputs: Tuple[Species, Species]
    probability: float


DEFAULT_CHANNELS: Tuple[Channel, ...] = (
    # (2 s_d + 1) / ((2 s_p + 1)(2 s_n + 1)) * isospin projection = 3/4 * 1/2
    Channel(NucleusType.d, (ParticleType.p, ParticleType.n), 3.0 / 8.0),
    Channel(NucleusType.He3, (NucleusType.d, ParticleType.p), 1.0 / 4.0),
    Channel(NucleusType.t, (NucleusType.d, ParticleType.n), 1.0 / 4.0),
    Channel(NucleusType.anti_d, (ParticleType.ap, ParticleType.an), 3.0 / 8.0),
    Channel(NucleusType.anti_He3, (NucleusType.anti_d, ParticleType.ap), 1.0 / 4.0),
    Channel(NucleusType.anti_t, (NucleusType.anti_d, ParticleType.an), 1.0 / 4.0),
)

NUCLEONS = (ParticleType.p, ParticleType.n)
ANTINUCLEONS = (ParticleType.ap, ParticleType.an)


class Coalescence:
    """
    Coalescence afterburner for one run.

    Example:
        config = CoalescenceConfig(deltap=0.44, seed=1)
        with Coalescence('nuclei.dat', config) as engine:
            engine.make_nuclei('particles_binary.bin')

    Parameters:
        output_file: Path or text file object for the nuclei list
            (None to run without output, e.g. when calling coalesce only)
        config: CoalescenceConfig (defaults if None)
        channels: Formation channels for the fixed-probability model
        pdg_table: PDG code -> ParticleType for reading hadrons
    """

    def __init__(self, output_file=None, config: Optional[CoalescenceConfig] = None,
                 channels: Sequence[Channel] = DEFAULT_CHANNELS,
                 pdg_table: Optional[Dict[int, ParticleType]] = None):
        self.config = config if config is not None else CoalescenceConfig()
        self.channels = tuple(channels)
        self.pdg_table = DEFAULT_PDG_TABLE if pdg_table is None else pdg_table
        self.rng = np.random.default_rng(self.config.seed)

        self.writer = NucleiWriter(output_file) if output_file is not None else None

        self.histograms = None
        if self.config.histograms:
            self.histograms = RapidityHistograms(
                n_bins=self.config.rapidity_bins,
                y_min=self.config.rapidity_min,
                y_max=self.config.rapidity_max,
            )

        self.event_number = 0
        self.n_nuclei = 0

    @property
    def deltap(self) -> float:
        return self.config.deltap

    @property
    def deltar(self) -> float:
        return self.config.deltar

    # ------------------------------------------------------------------
    # Fixed-probability model
    # ------------------------------------------------------------------

    def coalesce(self, hadrons: Sequence[Particle],
                 rng: Optional[np.random.Generator] = None) -> List[Particle]:
        """
        Fixed-probability coalescence of one event.

        Parameters:
            hadrons: Classified hadrons of the event; their valid flags are
                cleared when they end up in a nucleus
            rng: Random generator for the acceptance draws (engine's own
                generator if None)

        Returns:
            Nuclei that were not consumed into heavier nuclei
        """
        if rng is None:
            rng = self.rng

        pools: Dict[Species, List[Particle]] = defaultdict(list)
        for hadron in hadrons:
            # Spectators never collided and cannot form a cluster
            if hadron.is_spectator():
                continue
            pools[hadron.type].append(hadron)

        nuclei = []
        for channel in self.channels:
            for a, b in self._candidate_pairs(pools, channel.inputs):
                if not (a.valid and b.valid):
                    continue
                if rng.random() >= channel.probability:
                    continue
                constituents = a.hadrons() + b.hadrons()
                momenta = [h.momentum for h in constituents]
                origins = [h.origin for h in constituents]
                if not in_vicinity(momenta, origins, self.deltap, self.deltar):
                    continue
                if not claim(a, b):
                    continue

                nucleus = Particle(
                    momentum=a.momentum + b.momentum,
                    origin=cluster_origin(momenta, origins),
                    type=channel.product,
                    pdg_mother1=a.pdg,
                    pdg_mother2=b.pdg,
                    weight=1.0,
                    constituents=(a, b),
                )
                pools[channel.product].append(nucleus)
                nuclei.append(nucleus)

        return [nucleus for nucleus in nuclei if nucleus.valid]

    @staticmethod
    def _candidate_pairs(pools: Dict[Species, List[Particle]],
                         inputs: Tuple[Species, Species]):
        """Pairs from two pools; distinct unordered pairs if both are the same."""
        # Snapshot: products of a channel must not feed back into it
        first = list(pools.get(inputs[0], []))
        second = list(pools.get(inputs[1], []))
        if inputs[0] == inputs[1]:
            for i in range(len(first)):
                for j in range(i):
                    yield first[i], first[j]
        else:
            for a in first:
                for b in second:
                    yield a, b

    # ------------------------------------------------------------------
    # Wigner-function model
    # ------------------------------------------------------------------

    def coalesce_probabilistic(self, hadrons: Sequence[Particle]) -> List[Particle]:
        """
        Weighted deuteron candidates from the deuteron Wigner function.

        Protons and neutrons are pooled without distinction (antinucleons
        separately). Every pair with weight above the floor is returned;
        particles are not consumed.
        """
        nucleons = []
        antinucleons = []
        for hadron in hadrons:
            if hadron.is_spectator():
                continue
            if hadron.type in NUCLEONS:
                nucleons.append(hadron)
            elif hadron.type in ANTINUCLEONS:
                antinucleons.append(hadron)

        return (self._wigner_deuterons(nucleons, NucleusType.d) +
                self._wigner_deuterons(antinucleons, NucleusType.anti_d))

    def _wigner_deuterons(self, nucleons: List[Particle],
                          product: NucleusType) -> List[Particle]:
        if len(nucleons) < 2:
            return []
        momenta = np.array([h.momentum.to_array() for h in nucleons])
        origins = np.array([h.origin.to_array() for h in nucleons])
        first, second, weights, centers = pair_weights(
            momenta, origins, d=self.config.wigner_d, hbarc=HBARC,
            weight_floor=self.config.weight_floor)

        deuterons = []
        for i, j, w, center in zip(first, second, weights, centers):
            a, b = nucleons[i], nucleons[j]
            deuterons.append(Particle(
                momentum=a.momentum + b.momentum,
                origin=FourVector.from_array(center),
                type=product,
                pdg_mother1=a.pdg,
                pdg_mother2=b.pdg,
                weight=float(w),
                constituents=(a, b),
            ))
        return deuterons

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def process_event(self, hadrons: Sequence[Particle]) -> List[Particle]:
        """Run the configured model on one event and fill histograms."""
        if self.config.probabilistic:
            nuclei = self.coalesce_probabilistic(hadrons)
        else:
            nuclei = self.coalesce(hadrons)
        if self.histograms is not None:
            self.histograms.fill_event(hadrons, nuclei)
        self.n_nuclei += len(nuclei)
        return nuclei

    def make_nuclei(self, input_file: Union[str, Path]) -> int:
        """
        Read a SMASH binary file, coalesce every event and write the nuclei.

        Event numbers continue across calls, so several input files end up
        in one output file.

        Returns:
            Number of events (footers) read from this file
        """
        verbose = self.config.verbose
        first_event = self.event_number

        with BinaryReader(input_file, pdg_table=self.pdg_table) as reader:
            if verbose:
                print(f"\nReading {input_file} (SMASH {reader.smash_version}, "
                      f"format version {reader.format_version})")
            for event in tqdm(reader, desc='events', unit='ev', disable=not verbose):
                nuclei = self.process_event(event.particles)
                if self.writer is not None:
                    self.writer.write_event(first_event + event.number, nuclei)
            n_events = reader.n_events
            n_skipped = reader.n_skipped

        self.event_number = first_event + n_events
        if verbose:
            print(f"{n_events} events")
            if n_skipped:
                print(f"  Skipped {n_skipped} hadrons with non-positive energy")
        return n_events

    def close(self):
        if self.writer is not None:
            self.writer.close()

    def __enter__(self) -> 'Coalescence':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self) -> str:
        mode = 'probabilistic' if self.config.probabilistic else 'fixed'
        return (f"Coalescence(mode={mode}, dp={self.deltap:.3f} GeV, "
                f"dr={self.deltar:.3f} fm, events={self.event_number})")
