"""Physics module: Phase-space vicinity, deuteron Wigner function."""

from coalescence.physics.vicinity import in_vicinity, cluster_origin
from coalescence.physics.wigner import pair_weights

__all__ = ["in_vicinity", "cluster_origin", "pair_weights"]
