"""
Coalescence engine tests

Validates:
    - Vicinity test: two-body and three-body cuts, monotonicity
    - Fixed-probability model: acceptance, exclusivity, staged nuclei
    - Wigner-function model: weights, floor, shared particles
"""

import math
import warnings
import numpy as np
import sys
from pathlib import Path

import pytest

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from coalescence.core.config import CoalescenceConfig, HBARC
from coalescence.core.particle import Particle, ParticleType, NucleusType
from coalescence.core.vectors import FourVector
from coalescence.engine.coalescer import Coalescence, Channel, DEFAULT_CHANNELS
from coalescence.physics import vicinity
from coalescence.physics.vicinity import in_vicinity, cluster_origin
from coalescence.physics.wigner import pair_weights

NUCLEON_MASS = 0.938


class AlwaysAccept:
    """Stand-in generator: every acceptance draw passes."""

    def random(self):
        return 0.0


def nucleon(species=ParticleType.p, x=(0.0, 0.0, 0.0), p=(0.0, 0.0, 0.0),
            t=1.0, mothers=(2212, 2112), mass=NUCLEON_MASS):
    px, py, pz = p
    E = math.sqrt(mass**2 + px**2 + py**2 + pz**2)
    return Particle(momentum=FourVector(E, px, py, pz),
                    origin=FourVector(t, *x),
                    type=species, pdg_mother1=mothers[0], pdg_mother2=mothers[1])


def quiet_engine(**kwargs):
    kwargs.setdefault('seed', 12345)
    return Coalescence(config=CoalescenceConfig(verbose=False, **kwargs))


# ============================================================================
# Vicinity
# ============================================================================

def test_default_cuts():
    engine = quiet_engine()
    assert engine.deltap == 0.44
    assert engine.deltar == pytest.approx(2.0 * math.pi * HBARC / 0.44)


def test_two_body_vicinity():
    a = nucleon(p=(0.005, 0.0, 0.0))
    b = nucleon(ParticleType.n, x=(0.1, 0.0, 0.0), p=(-0.005, 0.0, 0.0))
    momenta = [a.momentum, b.momentum]

    assert in_vicinity(momenta, [a.origin, b.origin], 0.44, 2.8)
    # Momentum difference 0.01 GeV
    assert not in_vicinity(momenta, [a.origin, b.origin], 0.009, 2.8)
    # Distance 0.1 fm
    assert not in_vicinity(momenta, [a.origin, b.origin], 0.44, 0.09)


def test_vicinity_rolls_to_common_time():
    # Neutron born later at the same place; the proton drifts away meanwhile
    a = nucleon(p=(0.1, 0.0, 0.0), t=0.0)
    b = nucleon(ParticleType.n, p=(0.1, 0.0, 0.0), t=20.0)
    momenta = [a.momentum, b.momentum]
    origins = [a.origin, b.origin]

    # Equal momenta: both are at rest in the pair frame, where the later
    # birth shows up as a ~2.1 fm offset
    assert in_vicinity(momenta, origins, 0.44, 3.0)

    c = nucleon(ParticleType.n, p=(-0.1, 0.0, 0.0), t=20.0)
    # Opposite momenta: v = 0.1/0.943 per nucleon, ~2 fm apart after 20 fm/c
    assert not in_vicinity([a.momentum, c.momentum], [a.origin, c.origin], 0.44, 1.0)


def test_three_body_cuts_scaled():
    print("\n" + "="*70)
    print("Test: Three-body vicinity")
    print("="*70)

    deltar = 2.0
    left = nucleon(x=(-1.2, 0.0, 0.0))
    mid = nucleon(ParticleType.n)
    right = nucleon(ParticleType.n, x=(1.2, 0.0, 0.0))

    def check(*particles):
        return in_vicinity([q.momentum for q in particles],
                           [q.origin for q in particles], 0.44, deltar)

    assert check(left, mid)
    assert check(mid, right)
    # 1.2 fm from the centre > 2.0 / sqrt(3)
    assert not check(left, mid, right)

    inner_left = nucleon(x=(-1.1, 0.0, 0.0))
    inner_right = nucleon(ParticleType.n, x=(1.1, 0.0, 0.0))
    assert check(inner_left, mid, inner_right)
    print("  ✓ Radius cut scales with 1/sqrt(3)")


def test_three_body_momentum_cut():
    slow = [nucleon(p=(0.2, 0.0, 0.0)), nucleon(p=(-0.2, 0.0, 0.0)), nucleon()]
    origins = [q.origin for q in slow]
    momenta = [q.momentum for q in slow]
    # |p*| ~ 0.2 per nucleon: below 0.44 but above 0.3 / sqrt(3)
    assert in_vicinity(momenta, origins, 0.44, 3.0)
    assert not in_vicinity(momenta, origins, 0.3, 3.0)


def test_vicinity_monotonic():
    rng = np.random.default_rng(2024)
    accepted_before = 0
    for _ in range(300):
        a = nucleon(x=rng.normal(scale=2.0, size=3), p=rng.normal(scale=0.2, size=3),
                    t=rng.uniform(0.0, 5.0))
        b = nucleon(ParticleType.n, x=rng.normal(scale=2.0, size=3),
                    p=rng.normal(scale=0.2, size=3), t=rng.uniform(0.0, 5.0))
        momenta, origins = [a.momentum, b.momentum], [a.origin, b.origin]

        for dp, dr in [(0.2, 1.0), (0.3, 2.0), (0.44, 2.8)]:
            if in_vicinity(momenta, origins, dp, dr):
                accepted_before += 1
                assert in_vicinity(momenta, origins, 1.5 * dp, dr)
                assert in_vicinity(momenta, origins, dp, 1.5 * dr)
                assert in_vicinity(momenta, origins, 2.0 * dp, 2.0 * dr)

    assert accepted_before > 0


def test_three_body_vicinity_monotonic():
    rng = np.random.default_rng(2025)
    accepted_before = 0
    for _ in range(300):
        cluster = [nucleon(species, x=rng.normal(scale=1.0, size=3),
                           p=rng.normal(scale=0.1, size=3), t=rng.uniform(0.0, 2.0))
                   for species in (ParticleType.p, ParticleType.n, ParticleType.n)]
        momenta = [q.momentum for q in cluster]
        origins = [q.origin for q in cluster]

        for dp, dr in [(0.3, 2.0), (0.44, 2.8)]:
            if in_vicinity(momenta, origins, dp, dr):
                accepted_before += 1
                assert in_vicinity(momenta, origins, 1.5 * dp, dr)
                assert in_vicinity(momenta, origins, dp, 1.5 * dr)
                assert in_vicinity(momenta, origins, 2.0 * dp, 2.0 * dr)

    assert accepted_before > 0


def test_cm_frame_is_exact():
    rng = np.random.default_rng(5)
    with warnings.catch_warnings():
        warnings.simplefilter('error', RuntimeWarning)
        for _ in range(100):
            a = nucleon(p=rng.normal(scale=1.0, size=3))
            b = nucleon(p=rng.normal(scale=1.0, size=3))
            in_vicinity([a.momentum, b.momentum], [a.origin, b.origin], 0.44, 2.8)


def test_cm_frame_warning(monkeypatch):
    # No residual momentum can pass a negative tolerance
    monkeypatch.setattr(vicinity, 'CM_FRAME_TOLERANCE', -1.0)
    a = nucleon(p=(0.3, 0.0, 0.0))
    b = nucleon(ParticleType.n, p=(0.1, 0.2, 0.0))
    with pytest.warns(RuntimeWarning, match='cm frame'):
        in_vicinity([a.momentum, b.momentum], [a.origin, b.origin], 0.44, 2.8)


def test_cluster_origin():
    a = nucleon()
    b = nucleon(ParticleType.n, x=(1.0, 0.0, 0.0))
    origin = cluster_origin([a.momentum, b.momentum], [a.origin, b.origin])

    assert origin.x0 == pytest.approx(1.0)
    assert origin.x1 == pytest.approx(0.5)
    assert origin.x2 == pytest.approx(0.0)


# ============================================================================
# Fixed-probability model
# ============================================================================

def test_close_pair_forms_deuteron():
    print("\n" + "="*70)
    print("Test: Deuteron from a close pair")
    print("="*70)

    engine = quiet_engine()
    p = nucleon(p=(0.005, 0.0, 0.0))
    n = nucleon(ParticleType.n, x=(0.1, 0.0, 0.0), p=(-0.005, 0.0, 0.0))

    nuclei = engine.coalesce([p, n], rng=AlwaysAccept())
    assert len(nuclei) == 1
    d = nuclei[0]
    assert d.type == NucleusType.d
    assert d.momentum == p.momentum + n.momentum
    assert (d.pdg_mother1, d.pdg_mother2) == (2212, 2112)
    assert d.weight == 1.0
    assert not p.valid and not n.valid
    print(f"  ✓ {d.momentum}")

    far_p = nucleon(p=(0.005, 0.0, 0.0))
    far_n = nucleon(ParticleType.n, x=(50.0, 0.0, 0.0), p=(-0.005, 0.0, 0.0))
    assert engine.coalesce([far_p, far_n], rng=AlwaysAccept()) == []
    assert far_p.valid and far_n.valid


def test_acceptance_probability():
    engine = quiet_engine(seed=99)
    n_trials = 4000
    n_deuterons = 0
    for _ in range(n_trials):
        pair = [nucleon(), nucleon(ParticleType.n, x=(0.5, 0.0, 0.0))]
        n_deuterons += len(engine.coalesce(pair))

    fraction = n_deuterons / n_trials
    print(f"  Accepted fraction: {fraction:.3f} (expected 0.375)")
    # 5 sigma of a binomial with p = 3/8
    assert abs(fraction - 3.0 / 8.0) < 5 * math.sqrt(0.375 * 0.625 / n_trials)


def test_seed_reproducible():
    def run(seed):
        engine = quiet_engine(seed=seed)
        rng = np.random.default_rng(0)
        hadrons = [nucleon(species, x=rng.normal(scale=1.0, size=3),
                           p=rng.normal(scale=0.1, size=3))
                   for species in [ParticleType.p, ParticleType.n] * 10]
        return [(nucleus.type, tuple(nucleus.momentum)) for nucleus in engine.coalesce(hadrons)]

    assert run(7) == run(7)


def test_spectators_ignored():
    engine = quiet_engine()
    spectator_p = nucleon(p=(0.0, 0.0, 0.005), mothers=(0, 0))
    n = nucleon(ParticleType.n, x=(0.1, 0.0, 0.0), p=(0.0, 0.0, -0.005))
    assert engine.coalesce([spectator_p, n], rng=AlwaysAccept()) == []

    # Zero mothers but transverse momentum: not a spectator
    produced_p = nucleon(p=(0.005, 0.0, 0.0), mothers=(0, 0))
    assert len(engine.coalesce([produced_p, n], rng=AlwaysAccept())) == 1


def test_exclusivity():
    print("\n" + "="*70)
    print("Test: Exclusive use of nucleons")
    print("="*70)

    engine = Coalescence(config=CoalescenceConfig(verbose=False),
                         channels=DEFAULT_CHANNELS[:1])
    rng = np.random.default_rng(11)
    hadrons = [nucleon(species, x=rng.normal(scale=0.2, size=3),
                       p=rng.normal(scale=0.01, size=3))
               for species in [ParticleType.p] * 5 + [ParticleType.n] * 5]

    deuterons = engine.coalesce(hadrons, rng=AlwaysAccept())
    assert len(deuterons) == 5

    used = [id(h) for d in deuterons for h in d.hadrons()]
    assert len(used) == len(set(used)) == 10
    print(f"  ✓ {len(deuterons)} deuterons from 10 nucleons, no nucleon reused")


def test_exclusivity_random_events():
    engine = quiet_engine(seed=3)
    rng = np.random.default_rng(17)
    for _ in range(20):
        hadrons = [nucleon(species, x=rng.normal(scale=1.5, size=3),
                           p=rng.normal(scale=0.15, size=3))
                   for species in [ParticleType.p] * 8 + [ParticleType.n] * 8]
        nuclei = engine.coalesce(hadrons)
        used = [id(h) for nucleus in nuclei for h in nucleus.hadrons()]
        assert len(used) == len(set(used))
        assert all(nucleus.valid for nucleus in nuclei)


def test_triton_from_surviving_deuteron():
    print("\n" + "="*70)
    print("Test: Triton from deuteron + neutron")
    print("="*70)

    engine = quiet_engine()
    p = nucleon()
    n1 = nucleon(ParticleType.n, x=(0.3, 0.0, 0.0))
    n2 = nucleon(ParticleType.n, x=(0.0, 0.3, 0.0))

    nuclei = engine.coalesce([p, n1, n2], rng=AlwaysAccept())
    assert len(nuclei) == 1
    t = nuclei[0]
    assert t.type == NucleusType.t
    assert t.pdg == 1000010030
    assert (t.pdg_mother1, t.pdg_mother2) == (1000010020, 2112)
    assert t.momentum.x0 == pytest.approx(3 * NUCLEON_MASS)
    assert set(map(id, t.hadrons())) == {id(p), id(n1), id(n2)}
    print(f"  ✓ {t.momentum}")


def test_helium3_from_deuteron_and_proton():
    engine = quiet_engine()
    hadrons = [nucleon(), nucleon(ParticleType.n, x=(0.3, 0.0, 0.0)),
               nucleon(x=(0.0, 0.3, 0.0))]

    nuclei = engine.coalesce(hadrons, rng=AlwaysAccept())
    assert [nucleus.type for nucleus in nuclei] == [NucleusType.He3]
    assert (nuclei[0].pdg_mother1, nuclei[0].pdg_mother2) == (1000010020, 2212)


def test_antideuteron():
    engine = quiet_engine()
    hadrons = [nucleon(ParticleType.ap), nucleon(ParticleType.an, x=(0.3, 0.0, 0.0)),
               nucleon(ParticleType.n, x=(0.0, 0.3, 0.0))]

    nuclei = engine.coalesce(hadrons, rng=AlwaysAccept())
    assert [nucleus.type for nucleus in nuclei] == [NucleusType.anti_d]
    assert nuclei[0].pdg == -1000010020


def test_injected_hypertriton_channel():
    channels = DEFAULT_CHANNELS + (
        Channel(NucleusType.H3L, (NucleusType.d, ParticleType.la), 1.0 / 4.0),)
    engine = Coalescence(config=CoalescenceConfig(verbose=False), channels=channels)
    hadrons = [nucleon(), nucleon(ParticleType.n, x=(0.3, 0.0, 0.0)),
               nucleon(ParticleType.la, x=(0.0, 0.3, 0.0), mass=1.116)]

    nuclei = engine.coalesce(hadrons, rng=AlwaysAccept())
    assert [nucleus.type for nucleus in nuclei] == [NucleusType.H3L]
    assert nuclei[0].pdg_mother2 == 3122


# ============================================================================
# Wigner-function model
# ============================================================================

def test_wigner_weight_values():
    print("\n" + "="*70)
    print("Test: Deuteron Wigner weights")
    print("="*70)

    d = 3.2
    at_rest = [[NUCLEON_MASS, 0.0, 0.0, 0.0]] * 2
    origins = [[0.0, 0.0, 0.0, 0.0], [0.0, d, 0.0, 0.0]]
    first, second, weights, centers = pair_weights(at_rest, origins, d=d)

    assert list(zip(first, second)) == [(1, 0)]
    assert weights[0] == pytest.approx(3.0 * math.exp(-1.0), rel=1e-9)
    assert list(centers[0]) == pytest.approx([0.0, 0.5 * d, 0.0, 0.0], abs=1e-12)
    print(f"  ✓ r = d: w = {weights[0]:.6f}")

    # Back to back, same place: q = k
    k = 0.05
    E = math.sqrt(NUCLEON_MASS**2 + k**2)
    momenta = [[E, k, 0.0, 0.0], [E, -k, 0.0, 0.0]]
    _, _, weights, _ = pair_weights(momenta, [[0.0] * 4] * 2, d=d)
    assert weights[0] == pytest.approx(3.0 * math.exp(-(k * d / HBARC)**2), rel=1e-9)


def test_probabilistic_pairs_share_nucleons():
    engine = quiet_engine(probabilistic=True)
    hadrons = [nucleon(), nucleon(), nucleon(ParticleType.n)]

    deuterons = engine.coalesce_probabilistic(hadrons)
    assert len(deuterons) == 3
    for d in deuterons:
        assert d.type == NucleusType.d
        assert d.weight == pytest.approx(3.0)
    assert all(h.valid for h in hadrons)
    # proton-proton pair included
    assert any((d.pdg_mother1, d.pdg_mother2) == (2212, 2212) for d in deuterons)


def test_probabilistic_weight_floor():
    engine = quiet_engine(probabilistic=True)
    rng = np.random.default_rng(8)
    hadrons = [nucleon(species, x=rng.normal(scale=4.0, size=3),
                       p=rng.normal(scale=0.1, size=3), t=rng.uniform(0.0, 10.0))
               for species in [ParticleType.p, ParticleType.n] * 15]

    deuterons = engine.process_event(hadrons)
    assert 0 < len(deuterons) < 30 * 29 // 2
    assert all(d.weight > 1e-6 for d in deuterons)
    assert all(d.weight <= 3.0 + 1e-12 for d in deuterons)


def test_probabilistic_skips_spectators_and_separates_antimatter():
    engine = quiet_engine(probabilistic=True)
    hadrons = [nucleon(), nucleon(ParticleType.n, p=(0.0, 0.0, 0.0), mothers=(0, 0)),
               nucleon(ParticleType.ap), nucleon(ParticleType.an)]

    deuterons = engine.coalesce_probabilistic(hadrons)
    assert [d.type for d in deuterons] == [NucleusType.anti_d]


if __name__ == "__main__":
    test_default_cuts()
    test_two_body_vicinity()
    test_vicinity_rolls_to_common_time()
    test_three_body_cuts_scaled()
    test_three_body_momentum_cut()
    test_vicinity_monotonic()
    test_three_body_vicinity_monotonic()
    test_cm_frame_is_exact()
    with pytest.MonkeyPatch.context() as mp:
        test_cm_frame_warning(mp)
    test_cluster_origin()
    test_close_pair_forms_deuteron()
    test_acceptance_probability()
    test_seed_reproducible()
    test_spectators_ignored()
    test_exclusivity()
    test_exclusivity_random_events()
    test_triton_from_surviving_deuteron()
    test_helium3_from_deuteron_and_proton()
    test_antideuteron()
    test_injected_hypertriton_channel()
    test_wigner_weight_values()
    test_probabilistic_pairs_share_nucleons()
    test_probabilistic_weight_floor()
    test_probabilistic_skips_spectators_and_separates_antimatter()
    print("\nAll coalescence tests passed ✓")
