"""
Coalescence run configuration.

All fields have defaults so a run can be set up with no input. The
coalescence radius defaults to the value derived from the momentum
scale, deltar = 2 pi hbar c / deltap.
"""

import math
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Optional, Union

import yaml

HBARC = 0.197327053  # GeV fm


@dataclass
class CoalescenceConfig:
    """
    Parameters of the coalescence engine.

    deltap [GeV] and deltar [fm] are the phase-space cuts of the
    fixed-probability model; wigner_d [fm] is the size parameter of the
    deuteron Wigner function used in probabilistic mode.
    """

    deltap: float = 0.44
    deltar: Optional[float] = None
    probabilistic: bool = False
    seed: Optional[int] = None

    # Wigner-function model
    wigner_d: float = 3.2
    weight_floor: float = 1e-6

    # Rapidity histograms
    histograms: bool = False
    rapidity_bins: int = 41
    rapidity_min: float = -4.0
    rapidity_max: float = 4.0

    verbose: bool = True

    def __post_init__(self):
        if self.deltap <= 0:
            raise ValueError(f"deltap must be positive, got {self.deltap}")
        if self.deltar is None:
            self.deltar = 2.0 * math.pi * HBARC / self.deltap
        elif self.deltar <= 0:
            raise ValueError(f"deltar must be positive, got {self.deltar}")
        if self.wigner_d <= 0:
            raise ValueError(f"wigner_d must be positive, got {self.wigner_d}")
        if self.rapidity_bins < 1:
            raise ValueError(f"rapidity_bins must be >= 1, got {self.rapidity_bins}")
        if self.rapidity_max <= self.rapidity_min:
            raise ValueError("rapidity_max must be larger than rapidity_min")

    @classmethod
    def from_dict(cls, values: dict) -> 'CoalescenceConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}. "
                             f"Available: {sorted(known)}")
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'CoalescenceConfig':
        """Load from a YAML mapping; missing keys keep their defaults."""
        with open(path, 'r') as f:
            values = yaml.safe_load(f) or {}
        if not isinstance(values, dict):
            raise ValueError(f"{path}: expected a mapping at top level")
        return cls.from_dict(values)

    def to_yaml(self, path: Union[str, Path]):
        with open(path, 'w') as f:
            yaml.safe_dump(asdict(self), f, sort_keys=False)
