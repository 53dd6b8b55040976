"""I/O module: SMASH binary input, nuclei text output."""

from coalescence.io.binary_reader import BinaryReader, Event, FormatError, read_events
from coalescence.io.nuclei_writer import NucleiWriter

__all__ = ["BinaryReader", "Event", "FormatError", "read_events", "NucleiWriter"]
