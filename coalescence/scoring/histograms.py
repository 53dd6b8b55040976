"""
Rapidity spectra of protons, deuterons and tritons.

Accumulates weights per rapidity bin over many events. finalize()
normalizes to dN/dy per event and forms the ratio p * t / d^2 per bin,
which tracks how cluster yields scale with size.
"""

import math
import numpy as np
from pathlib import Path
from typing import Dict, Sequence, Union

import h5py

from coalescence.core.particle import Particle, ParticleType, NucleusType

SPECIES_HISTOGRAMS = {
    ParticleType.p: 'proton',
    NucleusType.d: 'deuteron',
    NucleusType.t: 'triton',
}


class RapidityHistograms:
    """
    Fixed-width rapidity histograms.

    Particles with undefined rapidity (E <= |pz|) or rapidity outside
    [y_min, y_max) are not binned; they are counted in n_rejected and
    n_out_of_range.

    Parameters:
        n_bins: Number of bins
        y_min, y_max: Histogram range
    """

    def __init__(self, n_bins: int = 41, y_min: float = -4.0, y_max: float = 4.0):
        if n_bins < 1 or y_max <= y_min:
            raise ValueError(f"Invalid binning: {n_bins} bins over [{y_min}, {y_max}]")
        self.n_bins = n_bins
        self.y_min = y_min
        self.y_max = y_max
        self.bin_width = (y_max - y_min) / n_bins
        self.bin_edges = np.linspace(y_min, y_max, n_bins + 1)
        self.reset()

    def reset(self):
        self.counts = {name: np.zeros(self.n_bins) for name in SPECIES_HISTOGRAMS.values()}
        self.n_events = 0
        self.n_rejected = 0
        self.n_out_of_range = 0

    def bin_index(self, y: float) -> int:
        return int(math.floor((y - self.y_min) / (self.y_max - self.y_min) * self.n_bins))

    def fill(self, particle: Particle) -> bool:
        """
        Add one particle's weight to its species histogram.

        Returns:
            True if the particle was binned
        """
        name = SPECIES_HISTOGRAMS.get(particle.type)
        if name is None or not particle.valid:
            return False

        E = particle.momentum.x0
        pz = particle.momentum.x3
        if not E > abs(pz):
            self.n_rejected += 1
            return False
        y = particle.rapidity()

        i = self.bin_index(y)
        if not 0 <= i < self.n_bins:
            self.n_out_of_range += 1
            return False
        self.counts[name][i] += particle.weight
        return True

    def fill_event(self, hadrons: Sequence[Particle], nuclei: Sequence[Particle]):
        for particle in hadrons:
            self.fill(particle)
        for particle in nuclei:
            self.fill(particle)
        self.n_events += 1

    def finalize(self) -> Dict[str, np.ndarray]:
        """
        Normalized spectra dN/dy per event and the ratio p * t / d^2.

        Returns:
            Dictionary with 'y' (bin centres), one array per species and
            'ratio' (0 where the deuteron bin is empty)
        """
        norm = max(self.n_events, 1) * self.bin_width
        result = {'y': 0.5 * (self.bin_edges[:-1] + self.bin_edges[1:])}
        for name, counts in self.counts.items():
            result[name] = counts / norm

        d = result['deuteron']
        ratio = np.zeros(self.n_bins)
        nonzero = d > 0.0
        ratio[nonzero] = result['proton'][nonzero] * result['triton'][nonzero] / d[nonzero]**2
        result['ratio'] = ratio
        return result

    def save_hdf5(self, filename: Union[str, Path]):
        """Write finalized spectra plus raw counts."""
        result = self.finalize()
        with h5py.File(filename, 'w') as f:
            f.attrs['n_events'] = self.n_events
            f.attrs['bin_width'] = self.bin_width
            f.attrs['n_rejected'] = self.n_rejected
            f.attrs['n_out_of_range'] = self.n_out_of_range
            f.create_dataset('bin_edges', data=self.bin_edges)
            for name, values in result.items():
                f.create_dataset(name, data=values)
            raw = f.create_group('counts')
            for name, counts in self.counts.items():
                raw.create_dataset(name, data=counts)

    def save_text(self, filename: Union[str, Path]):
        """Columns: y, proton, deuteron, triton, ratio."""
        result = self.finalize()
        columns = ['y', 'proton', 'deuteron', 'triton', 'ratio']
        data = np.column_stack([result[c] for c in columns])
        np.savetxt(filename, data, fmt='%12.8f',
                   header=f"{' '.join(columns)}  ({self.n_events} events)")

    def __repr__(self) -> str:
        return (f"RapidityHistograms(bins={self.n_bins}, "
                f"range=[{self.y_min}, {self.y_max}], events={self.n_events})")
