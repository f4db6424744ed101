"""Physics/math helpers for V0-pair kinematics."""

from __future__ import annotations

import math

from .models import Candidate, LorentzVector, TruthInfo


def momentum_to_lorentz(px: float, py: float, pz: float, mass: float) -> LorentzVector:
    """Build a Lorentz 4-vector from momentum components and a mass hypothesis."""
    energy = (px * px + py * py + pz * pz + mass * mass) ** 0.5
    return LorentzVector(px=px, py=py, pz=pz, e=energy)


def candidate_to_lorentz(candidate: Candidate, mass: float) -> LorentzVector:
    """Convert a V0 candidate plus mass hypothesis into a Lorentz 4-vector."""
    return momentum_to_lorentz(candidate.px, candidate.py, candidate.pz, mass)


def pair_momentum(a: Candidate, b: Candidate) -> tuple[float, float, float]:
    """Vector sum of the two candidate momenta."""
    return a.px + b.px, a.py + b.py, a.pz + b.pz


def pair_pt(a: Candidate, b: Candidate) -> float:
    """Transverse momentum of the pair."""
    px, py, _ = pair_momentum(a, b)
    return math.hypot(px, py)


def pair_p4(a: Candidate, b: Candidate, mass_a: float, mass_b: float) -> LorentzVector:
    """Summed 4-vector of two candidates under their assumed rest masses."""
    return candidate_to_lorentz(a, mass_a) + candidate_to_lorentz(b, mass_b)


def pair_mass(a: Candidate, b: Candidate, mass_a: float, mass_b: float) -> float:
    """Two-body invariant mass, `sqrt((E_a + E_b)^2 - |p_a + p_b|^2)`."""
    return pair_p4(a, b, mass_a, mass_b).mass


def rapidity(px: float, py: float, pz: float, mass: float) -> float:
    """Rapidity from momentum components and mass, `asinh(pz / mT)`."""
    mt = math.sqrt(mass * mass + px * px + py * py)
    if mt <= 0.0:
        if pz == 0.0:
            return 0.0
        return math.copysign(math.inf, pz)
    return math.asinh(pz / mt)


def pair_rapidity(a: Candidate, b: Candidate, mass_a: float, mass_b: float) -> float:
    """Rapidity of the pair computed with its own invariant mass."""
    px, py, pz = pair_momentum(a, b)
    return rapidity(px, py, pz, pair_mass(a, b, mass_a, mass_b))


def truth_pair_rapidity(a: TruthInfo, b: TruthInfo, mother_mass: float) -> float:
    """Generator-level rapidity of the summed truth momenta under the mother mass."""
    return rapidity(a.px_mc + b.px_mc, a.py_mc + b.py_mc, a.pz_mc + b.pz_mc, mother_mass)


def pair_kinematics(p4: LorentzVector) -> tuple[float, float]:
    """Return `(pt, eta)` from a candidate 4-vector."""
    pt = math.sqrt(p4.px * p4.px + p4.py * p4.py)
    p = math.sqrt(p4.px * p4.px + p4.py * p4.py + p4.pz * p4.pz)
    if p == abs(p4.pz):
        eta = 1e9 if p4.pz >= 0 else -1e9
    else:
        eta = 0.5 * math.log((p + p4.pz) / (p - p4.pz))
    return pt, eta
