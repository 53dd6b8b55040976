"""
Phase-space vicinity test for coalescence candidates.

Candidates are compared in the rest frame of the cluster they would
form. Positions are rolled forward to the moment the last of them was
produced, so every constituent is compared at a common time.

For k >= 3 constituents the cuts apply to distances from the cluster
centre and are scaled by 1/sqrt(k), keeping the phase-space volume per
pair comparable to the two-body case.
"""

import math
import warnings
from typing import List, Optional, Sequence, Tuple

from coalescence.core.vectors import FourVector, ThreeVector

CM_FRAME_TOLERANCE = 1e-12


def rest_frame_velocity(momenta: Sequence[FourVector]) -> Optional[ThreeVector]:
    """
    Velocity of the rest frame of a set of momenta.

    Returns:
        None if the total energy is not positive or the total momentum is
        not time-like
    """
    total = FourVector()
    for p in momenta:
        total = total + p
    if total.x0 <= 0.0:
        return None
    v = total.velocity()
    if v.sqr() >= 1.0:
        return None
    return v


def _boost_all(momenta: Sequence[FourVector], origins: Sequence[FourVector],
               v: ThreeVector) -> Tuple[List[FourVector], List[FourVector]]:
    p_cm = [p.lorentz_boost(v) for p in momenta]
    x_cm = [x.lorentz_boost(v) for x in origins]

    p_sum = ThreeVector()
    for p in p_cm:
        p_sum = p_sum + p.threevec()
    if p_sum.sqr() > CM_FRAME_TOLERANCE:
        warnings.warn(f"Something is wrong with cm frame: total momentum {p_sum}",
                      RuntimeWarning, stacklevel=3)
    return p_cm, x_cm


def _roll_forward(p_cm: Sequence[FourVector],
                  x_cm: Sequence[FourVector]) -> Tuple[float, List[ThreeVector]]:
    """Free-stream all positions to the latest formation time."""
    t_max = max(x.x0 for x in x_cm)
    positions = [x.threevec() + p.velocity() * (t_max - x.x0)
                 for p, x in zip(p_cm, x_cm)]
    return t_max, positions


def _centroid(vectors: Sequence[ThreeVector]) -> ThreeVector:
    c = ThreeVector()
    for r in vectors:
        c = c + r
    return c / len(vectors)


def in_vicinity(momenta: Sequence[FourVector], origins: Sequence[FourVector],
                deltap: float, deltar: float) -> bool:
    """
    Check whether particles are close enough in phase space to coalesce.

    Parameters:
        momenta: Four-momenta of the constituents [GeV]
        origins: Four-positions of their last interaction [fm]
        deltap: Momentum cut [GeV]
        deltar: Spatial cut [fm]

    Returns:
        True if the candidates pass both cuts
    """
    k = len(momenta)
    if k < 2 or k != len(origins):
        raise ValueError(f"Need at least two constituents with matching origins, "
                         f"got {k} momenta and {len(origins)} origins")

    v = rest_frame_velocity(momenta)
    if v is None:
        return False
    p_cm, x_cm = _boost_all(momenta, origins, v)

    if k == 2:
        if (p_cm[0].threevec() - p_cm[1].threevec()).abs() > deltap:
            return False
    else:
        deltap_k = deltap / math.sqrt(k)
        if any(p.abs3() > deltap_k for p in p_cm):
            return False

    _, positions = _roll_forward(p_cm, x_cm)

    if k == 2:
        return (positions[0] - positions[1]).abs() <= deltar

    center = _centroid(positions)
    deltar_k = deltar / math.sqrt(k)
    return all((r - center).abs() <= deltar_k for r in positions)


def cluster_origin(momenta: Sequence[FourVector],
                   origins: Sequence[FourVector]) -> FourVector:
    """
    Space-time point of a cluster in the computational frame.

    Centroid of the rolled-forward constituent positions at the latest
    rest-frame formation time, boosted back. Falls back to the plain
    average of the origins when no rest frame exists.
    """
    v = rest_frame_velocity(momenta)
    if v is None:
        total = FourVector()
        for x in origins:
            total = total + x
        return total / len(origins)

    p_cm = [p.lorentz_boost(v) for p in momenta]
    x_cm = [x.lorentz_boost(v) for x in origins]
    t_max, positions = _roll_forward(p_cm, x_cm)
    center = FourVector.from_threevec(t_max, _centroid(positions))
    return center.lorentz_boost(-v)
