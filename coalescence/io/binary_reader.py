"""
Reader for the SMASH extended binary particle output.

Layout:
    header:  'SMSH' | uint16 format_version | uint16 format_variant |
             uint32 len | version string (len bytes)
    blocks:  'p' | uint32 N | N particle records
             'f' | uint32 event | float64 impact_parameter | [pad byte]
    any other block tag ends the stream.

Record layouts are numpy structured dtypes, so the byte layout is stated
once and decoded in bulk with np.frombuffer.
"""

import numpy as np
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, List, Optional, Union

from coalescence.core.particle import (Particle, ParticleType, DEFAULT_PDG_TABLE,
                                       pdg_to_type)
from coalescence.core.vectors import FourVector

MAGIC = b'SMSH'
SUPPORTED_VARIANT = 1


class FormatError(ValueError):
    """Input is not a readable SMASH extended binary file."""


def header_dtype(byteorder: str = '<') -> np.dtype:
    return np.dtype([
        ('magic', 'S4'),
        ('format_version', byteorder + 'u2'),
        ('format_variant', byteorder + 'u2'),
        ('version_length', byteorder + 'u4'),
    ])


def footer_dtype(format_version: int, byteorder: str = '<') -> np.dtype:
    """Event footer; versions after 6 append one padding byte."""
    layout = [
        ('event', byteorder + 'u4'),
        ('impact_parameter', byteorder + 'f8'),
    ]
    if format_version > 6:
        layout.append(('empty', 'u1'))
    return np.dtype(layout)


def particle_dtype(byteorder: str = '<') -> np.dtype:
    """One particle line of the extended format (128 bytes, packed)."""
    f8 = byteorder + 'f8'
    i4 = byteorder + 'i4'
    return np.dtype([
        ('t', f8), ('x', f8), ('y', f8), ('z', f8),
        ('mass', f8),
        ('p0', f8), ('px', f8), ('py', f8), ('pz', f8),
        ('pdg', i4), ('id', i4), ('charge', i4), ('ncoll', i4),
        ('form_time', f8), ('xsecfac', f8),
        ('proc_id_origin', i4), ('proc_type_origin', i4),
        ('time_last_coll', f8),
        ('pdg_mother1', i4), ('pdg_mother2', i4),
    ])


PARTICLE_RECORD_DTYPE = particle_dtype()


@dataclass
class Event:
    """Particles of one particle block, tagged with the event number."""
    number: int
    particles: List[Particle]


class BinaryReader:
    """
    Stream events out of a SMASH binary file.

    Usage:
        with BinaryReader('particles_binary.bin') as reader:
            for event in reader:
                engine.coalesce(event.particles)
        print(reader.n_events)

    Parameters:
        source: Path or an open binary file object
        pdg_table: PDG code -> ParticleType used to classify hadrons
        byteorder: '<' (little endian, default) or '>'
    """

    def __init__(self, source: Union[str, Path, BinaryIO],
                 pdg_table: Optional[Dict[int, ParticleType]] = None,
                 byteorder: str = '<'):
        if byteorder not in ('<', '>', '='):
            raise ValueError(f"Unknown byte order '{byteorder}'")
        self.byteorder = byteorder
        self.pdg_table = DEFAULT_PDG_TABLE if pdg_table is None else pdg_table

        if isinstance(source, (str, Path)):
            self.name = str(source)
            self._file = open(source, 'rb')
            self._owns_file = True
        else:
            self.name = getattr(source, 'name', repr(source))
            self._file = source
            self._owns_file = False

        self._particle_dtype = particle_dtype(byteorder)
        self._count_dtype = np.dtype(byteorder + 'u4')

        # Filled while reading
        self.n_events = 0
        self.n_skipped = 0
        self.impact_parameter = None

        try:
            self._read_header()
        except Exception:
            self.close()
            raise
        self._footer_dtype = footer_dtype(self.format_version, byteorder)

    def _read_exact(self, n: int, what: str) -> bytes:
        data = self._file.read(n)
        if len(data) != n:
            raise FormatError(f"{self.name}: truncated {what} "
                              f"(expected {n} bytes, got {len(data)})")
        return data

    def _read_header(self):
        dtype = header_dtype(self.byteorder)
        raw = self._file.read(dtype.itemsize)
        if len(raw) < 4 or raw[:4] != MAGIC:
            raise FormatError(f"{self.name} is likely not a SMASH binary: "
                              f"magic number does not match")
        if len(raw) != dtype.itemsize:
            raise FormatError(f"{self.name}: truncated header")
        header = np.frombuffer(raw, dtype=dtype)[0]

        self.format_version = int(header['format_version'])
        self.format_variant = int(header['format_variant'])
        if self.format_variant != SUPPORTED_VARIANT:
            raise FormatError(f"{self.name} is not a file of extended SMASH "
                              f"binary format (variant {self.format_variant})")

        length = int(header['version_length'])
        version = self._read_exact(length, 'version string')
        self.smash_version = version.decode('ascii', errors='replace')

    def __iter__(self) -> Iterator[Event]:
        return self.events()

    def events(self) -> Iterator[Event]:
        """Yield one Event per particle block until the stream ends."""
        while True:
            block_type = self._file.read(1)
            if block_type == b'f':
                raw = self._read_exact(self._footer_dtype.itemsize, 'event footer')
                footer = np.frombuffer(raw, dtype=self._footer_dtype)[0]
                self.impact_parameter = float(footer['impact_parameter'])
                self.n_events += 1
            elif block_type == b'p':
                raw = self._read_exact(self._count_dtype.itemsize, 'particle block')
                n_lines = int(np.frombuffer(raw, dtype=self._count_dtype)[0])
                raw = self._read_exact(n_lines * self._particle_dtype.itemsize,
                                       'particle block')
                records = np.frombuffer(raw, dtype=self._particle_dtype)
                yield Event(self.n_events, self._to_particles(records))
            else:
                # EOF or a block type this reader does not handle
                return

    def _to_particles(self, records: np.ndarray) -> List[Particle]:
        """Classify, drop boring species and backtrack origins."""
        hadrons = []
        for rec in records:
            hadron_type = pdg_to_type(int(rec['pdg']), self.pdg_table)
            if hadron_type == ParticleType.boring:
                continue
            if rec['p0'] <= 0.0:
                self.n_skipped += 1
                continue

            r = FourVector(rec['t'], rec['x'], rec['y'], rec['z'])
            p = FourVector(rec['p0'], rec['px'], rec['py'], rec['pz'])
            t_last = float(rec['time_last_coll'])
            # Free streaming back to the last interaction
            origin = FourVector.from_threevec(
                t_last, r.threevec() - p.velocity() * (r.x0 - t_last))
            hadrons.append(Particle(momentum=p, origin=origin, type=hadron_type,
                                    pdg_mother1=int(rec['pdg_mother1']),
                                    pdg_mother2=int(rec['pdg_mother2'])))
        return hadrons

    def close(self):
        if self._owns_file and not self._file.closed:
            self._file.close()

    def __enter__(self) -> 'BinaryReader':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self) -> str:
        return (f"BinaryReader({self.name!r}, version={self.format_version}, "
                f"events={self.n_events})")


def read_events(source: Union[str, Path, BinaryIO], **kwargs) -> Iterator[Event]:
    """Convenience generator over all events of one file."""
    with BinaryReader(source, **kwargs) as reader:
        yield from reader
