"""
Deuteron coalescence weights from a Gaussian Wigner function.

    w = 3 * exp(-r^2 / d^2 - q^2 * d^2 / (hbar c)^2)

with q = (p1 - p2) / 2 and r = r1 - r2 evaluated in the pair rest frame
after rolling both nucleons to the later formation time.

The all-pairs loop is a Numba kernel working on (N, 4) arrays of
momenta and origins.
"""

import numpy as np
import numba

from coalescence.core.config import HBARC

DEUTERON_SPIN_DEGENERACY = 3.0


@numba.njit(fastmath=True, cache=True)
def _boost(a0, a1, a2, a3, vx, vy, vz, gamma):
    """Lorentz boost of (a0, a1, a2, a3) into a frame moving with v."""
    xprime_0 = gamma * (a0 - (a1 * vx + a2 * vy + a3 * vz))
    constantpart = gamma / (gamma + 1.0) * (xprime_0 + a0)
    return (xprime_0,
            a1 - vx * constantpart,
            a2 - vy * constantpart,
            a3 - vz * constantpart)


@numba.njit(fastmath=True, cache=True)
def deuteron_wigner_weights(momenta: np.ndarray, origins: np.ndarray,
                            d: float, hbarc: float, weight_floor: float):
    """
    Wigner weights for every unordered pair of nucleons.

    Parameters:
        momenta: (N, 4) array of (E, px, py, pz) [GeV]
        origins: (N, 4) array of (t, x, y, z) [fm]
        d: Deuteron size parameter [fm]
        hbarc: hbar c [GeV fm]
        weight_floor: Pairs with weight <= floor are dropped

    Returns:
        (first, second, weights, centers): indices of the pair members,
        their weights, and the (M, 4) pair centre in the input frame.
        Pairs without a subluminal rest frame are skipped.
    """
    n = momenta.shape[0]
    n_pairs = n * (n - 1) // 2
    first = np.empty(n_pairs, dtype=np.int64)
    second = np.empty(n_pairs, dtype=np.int64)
    weights = np.empty(n_pairs, dtype=np.float64)
    centers = np.empty((n_pairs, 4), dtype=np.float64)

    d2 = d * d
    q_scale = d2 / (hbarc * hbarc)
    count = 0

    for i in range(n):
        for j in range(i):
            e_tot = momenta[i, 0] + momenta[j, 0]
            if e_tot <= 0.0:
                continue
            vx = (momenta[i, 1] + momenta[j, 1]) / e_tot
            vy = (momenta[i, 2] + momenta[j, 2]) / e_tot
            vz = (momenta[i, 3] + momenta[j, 3]) / e_tot
            v2 = vx * vx + vy * vy + vz * vz
            if v2 >= 1.0:
                continue
            gamma = 1.0 / np.sqrt(1.0 - v2)

            p1 = _boost(momenta[i, 0], momenta[i, 1], momenta[i, 2], momenta[i, 3],
                        vx, vy, vz, gamma)
            p2 = _boost(momenta[j, 0], momenta[j, 1], momenta[j, 2], momenta[j, 3],
                        vx, vy, vz, gamma)
            x1 = _boost(origins[i, 0], origins[i, 1], origins[i, 2], origins[i, 3],
                        vx, vy, vz, gamma)
            x2 = _boost(origins[j, 0], origins[j, 1], origins[j, 2], origins[j, 3],
                        vx, vy, vz, gamma)

            # Relative momentum q = (p1 - p2) / 2
            qx = 0.5 * (p1[1] - p2[1])
            qy = 0.5 * (p1[2] - p2[2])
            qz = 0.5 * (p1[3] - p2[3])
            q2 = qx * qx + qy * qy + qz * qz

            # Roll both to the later formation time
            t_max = max(x1[0], x2[0])
            dt1 = (t_max - x1[0]) / p1[0]
            dt2 = (t_max - x2[0]) / p2[0]
            r1x = x1[1] + p1[1] * dt1
            r1y = x1[2] + p1[2] * dt1
            r1z = x1[3] + p1[3] * dt1
            r2x = x2[1] + p2[1] * dt2
            r2y = x2[2] + p2[2] * dt2
            r2z = x2[3] + p2[3] * dt2
            dx = r1x - r2x
            dy = r1y - r2y
            dz = r1z - r2z
            r2 = dx * dx + dy * dy + dz * dz

            w = DEUTERON_SPIN_DEGENERACY * np.exp(-r2 / d2 - q2 * q_scale)
            if w <= weight_floor:
                continue

            # Pair centre, back in the input frame
            c = _boost(t_max, 0.5 * (r1x + r2x), 0.5 * (r1y + r2y), 0.5 * (r1z + r2z),
                       -vx, -vy, -vz, gamma)

            first[count] = i
            second[count] = j
            weights[count] = w
            centers[count, 0] = c[0]
            centers[count, 1] = c[1]
            centers[count, 2] = c[2]
            centers[count, 3] = c[3]
            count += 1

    return first[:count], second[:count], weights[:count], centers[:count]


def pair_weights(momenta: np.ndarray, origins: np.ndarray, d: float = 3.2,
                 hbarc: float = HBARC, weight_floor: float = 1e-6):
    """
    Python entry point for deuteron_wigner_weights.

    Accepts anything convertible to (N, 4) float arrays.
    """
    momenta = np.ascontiguousarray(momenta, dtype=np.float64).reshape(-1, 4)
    origins = np.ascontiguousarray(origins, dtype=np.float64).reshape(-1, 4)
    if momenta.shape != origins.shape:
        raise ValueError(f"Shape mismatch: momenta {momenta.shape}, "
                         f"origins {origins.shape}")
    return deuteron_wigner_weights(momenta, origins, float(d), float(hbarc),
                                   float(weight_floor))
