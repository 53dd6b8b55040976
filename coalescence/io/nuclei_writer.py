"""
Text output of coalesced nuclei.

One header line per event followed by one line per nucleus:

    # event <event_number> <n_nuclei>
    <E> <px> <py> <pz> <pdg> <weight>
"""

from pathlib import Path
from typing import Sequence, TextIO, Union

from coalescence.core.particle import Particle

EVENT_HEADER = "# event {} {}\n"
NUCLEUS_LINE = "%12.8f %12.8f %12.8f %12.8f %d %12.8f\n"


def format_nucleus(nucleus: Particle) -> str:
    p = nucleus.momentum
    return NUCLEUS_LINE % (p.x0, p.x1, p.x2, p.x3, nucleus.pdg, nucleus.weight)


class NucleiWriter:
    """
    Write nuclei event by event.

    Parameters:
        target: Output path (opened for writing, truncated) or an open
            text file object
    """

    def __init__(self, target: Union[str, Path, TextIO]):
        if isinstance(target, (str, Path)):
            self.name = str(target)
            self._file = open(target, 'w')
            self._owns_file = True
        else:
            self.name = getattr(target, 'name', repr(target))
            self._file = target
            self._owns_file = False
        self.n_events = 0

    def write_event(self, event_number: int, nuclei: Sequence[Particle]):
        self._file.write(EVENT_HEADER.format(event_number, len(nuclei)))
        for nucleus in nuclei:
            self._file.write(format_nucleus(nucleus))
        self.n_events += 1

    def close(self):
        if self._owns_file and not self._file.closed:
            self._file.close()

    def __enter__(self) -> 'NucleiWriter':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
