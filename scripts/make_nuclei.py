#!/usr/bin/env python3
"""
Form light nuclei from SMASH extended binary particle output.

Usage:
    make_nuclei.py -i run1/particles_binary.bin run2/particles_binary.bin \
                   -o nuclei.dat [--dp 0.44] [--dr 2.8] [-w]

Output: one '# event <n> <count>' line per event, then
'E px py pz pdg weight' per nucleus.
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path to import coalescence
sys.path.insert(0, str(Path(__file__).parent.parent))

from coalescence.core.config import CoalescenceConfig
from coalescence.engine.coalescer import Coalescence


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Coalescence of nucleons into light nuclei")
    parser.add_argument('-p', '--dp', type=float, default=None,
                        help="coalescence dp [GeV] (default 0.44)")
    parser.add_argument('-r', '--dr', type=float, default=None,
                        help="coalescence dr [fm] (default 2 pi hbar c / dp)")
    parser.add_argument('-w', '--probabilistic', action='store_true',
                        help="probabilistic coalescence, 3 exp(-dr2/d2 - dp2 d2)")
    parser.add_argument('-i', '--inputfiles', nargs='+', required=True,
                        help="particle files in SMASH extended binary format")
    parser.add_argument('-o', '--outputfile', default='nuclei.dat',
                        help="output file for nuclei momenta and pdg ids "
                             "(default: ./nuclei.dat)")
    parser.add_argument('-c', '--config', default=None,
                        help="YAML file with CoalescenceConfig fields")
    parser.add_argument('--seed', type=int, default=None,
                        help="random seed for reproducible runs")
    parser.add_argument('--histograms', default=None,
                        help="write rapidity histograms to this .h5 file")
    parser.add_argument('-q', '--quiet', action='store_true')
    return parser.parse_args(argv)


def build_config(args) -> CoalescenceConfig:
    values = {}
    if args.config is not None:
        values = vars(CoalescenceConfig.from_yaml(args.config))
        if args.dp is not None and args.dr is None:
            # Re-derive dr from the new dp
            values['deltar'] = None
    if args.dp is not None:
        values['deltap'] = args.dp
    if args.dr is not None:
        values['deltar'] = args.dr
    if args.probabilistic:
        values['probabilistic'] = True
    if args.seed is not None:
        values['seed'] = args.seed
    if args.histograms is not None:
        values['histograms'] = True
    if args.quiet:
        values['verbose'] = False
    return CoalescenceConfig.from_dict(values)


def histogram_file(args, config: CoalescenceConfig):
    """
    Where to save histograms: --histograms, or the output file with an .h5
    suffix when only the YAML config enables them. None if disabled.
    """
    if not config.histograms:
        return None
    if args.histograms is not None:
        return args.histograms
    return str(Path(args.outputfile).with_suffix('.h5'))


def main(argv=None):
    args = parse_args(argv)
    config = build_config(args)
    histograms_path = histogram_file(args, config)

    if config.verbose:
        print(f"Input files: {' '.join(args.inputfiles)}")
        print(f"Output file: {args.outputfile}")
        if histograms_path is not None:
            print(f"Histogram file: {histograms_path}")
        if config.probabilistic:
            print("Printing out coalescence weights according to deuteron Wigner function.")
        else:
            print(f"\n dp = {config.deltap}, dr = {config.deltar}")

    with Coalescence(args.outputfile, config) as engine:
        for input_file in args.inputfiles:
            engine.make_nuclei(input_file)

        if config.verbose:
            print(f"\nTotal: {engine.event_number} events, {engine.n_nuclei} nuclei")

        if engine.histograms is not None:
            engine.histograms.save_hdf5(histograms_path)
            if config.verbose:
                print(f"Histograms saved: {histograms_path}")


if __name__ == "__main__":
    main()
