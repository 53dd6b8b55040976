"""Engine module: Coalescence models and file driver."""

from coalescence.engine.coalescer import Coalescence, Channel, DEFAULT_CHANNELS

__all__ = ["Coalescence", "Channel", "DEFAULT_CHANNELS"]
