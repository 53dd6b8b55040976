"""
Rapidity Spectra - Plotting Example

Plots the dN/dy spectra of protons, deuterons and tritons and the
ratio p * t / d^2 stored by make_nuclei.py --histograms.

Usage:
    python scripts/make_nuclei.py -i particles_binary.bin --histograms spectra.h5
    python examples/scripts/plot_rapidity.py spectra.h5

A ratio that stays flat in rapidity indicates that the cluster yields
scale with the local nucleon density as expected from coalescence.
"""

import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path
import sys

import h5py

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from coalescence.scoring.histograms import SPECIES_HISTOGRAMS


def load_spectra(filename):
    """
    Read finalized spectra from an HDF5 file written by RapidityHistograms.

    Returns:
        spectra: Dictionary of arrays ('y', species names, 'ratio')
        n_events: Number of events the spectra are averaged over
    """
    with h5py.File(filename, 'r') as f:
        spectra = {'y': f['y'][...], 'ratio': f['ratio'][...]}
        for name in SPECIES_HISTOGRAMS.values():
            spectra[name] = f[name][...]
        n_events = int(f.attrs['n_events'])
    return spectra, n_events


def plot_spectra(spectra, n_events, save_path=None):
    """
    Two panels: dN/dy per species (log scale) and p * t / d^2.

    Parameters:
        spectra: Output of load_spectra
        n_events: Event count for the title
        save_path: Path to save figure (optional)
    """
    fig, (ax_spec, ax_ratio) = plt.subplots(2, 1, figsize=(10, 9), sharex=True)

    y = spectra['y']
    colors = {'proton': 'blue', 'deuteron': 'green', 'triton': 'red'}
    for name in SPECIES_HISTOGRAMS.values():
        values = spectra[name]
        mask = values > 0
        if not np.any(mask):
            continue
        ax_spec.plot(y[mask], values[mask], 'o-', color=colors.get(name, 'black'),
                     linewidth=2, markersize=4, label=name)

    ax_spec.set_yscale('log')
    ax_spec.set_ylabel('dN/dy', fontsize=14, fontweight='bold')
    ax_spec.set_title(f'Rapidity spectra ({n_events:,} events)',
                      fontsize=16, fontweight='bold')
    ax_spec.grid(True, alpha=0.3, linestyle='--')
    ax_spec.legend(fontsize=12)

    mask = spectra['ratio'] > 0
    ax_ratio.plot(y[mask], spectra['ratio'][mask], 's-', color='purple', linewidth=2)
    ax_ratio.set_xlabel('Rapidity y', fontsize=14, fontweight='bold')
    ax_ratio.set_ylabel(r'$p \cdot t / d^2$', fontsize=14, fontweight='bold')
    ax_ratio.grid(True, alpha=0.3, linestyle='--')

    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=300, bbox_inches='tight')
        print(f"Figure saved: {save_path}")

    return fig


def main():
    if len(sys.argv) < 2:
        print(f"Usage: {sys.argv[0]} spectra.h5 [figure.png]")
        sys.exit(1)

    filename = Path(sys.argv[1])
    save_path = sys.argv[2] if len(sys.argv) > 2 else filename.with_suffix('.png')

    spectra, n_events = load_spectra(filename)

    print(f"\n{'='*70}")
    print("Rapidity spectra")
    print(f"{'='*70}")
    print(f"  File: {filename}")
    print(f"  Events: {n_events:,}")
    for name in SPECIES_HISTOGRAMS.values():
        total = np.sum(spectra[name]) * (spectra['y'][1] - spectra['y'][0])
        print(f"  {name:>9s} per event: {total:.4g}")
    print(f"{'='*70}\n")

    plot_spectra(spectra, n_events, save_path=save_path)
    plt.show()


if __name__ == "__main__":
    main()
