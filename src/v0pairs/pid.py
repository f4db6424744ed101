"""Particle-hypothesis helpers and reference masses.

This module exposes the named hypotheses used by the selection (mass windows,
competing-mass veto) and by the pair kinematics, plus a PDG-code lookup used
for generator-level checks.
"""

from __future__ import annotations

from .models import ParticleHypothesis

MASS_K0SHORT = 0.497611
MASS_KAON_NEUTRAL = 0.497611
MASS_LAMBDA = 1.115683
MASS_GAMMA = 0.0

PDG_GAMMA = 22
PDG_ELECTRON = 11
PDG_PION = 211
PDG_K0SHORT = 310
PDG_KSTAR0 = 313

_PION = ParticleHypothesis(name="pi", mass=0.13957039, pdg_id=PDG_PION)
_PROTON = ParticleHypothesis(name="p", mass=0.93827208816, pdg_id=2212)
_ELECTRON = ParticleHypothesis(name="e", mass=0.00051099895, pdg_id=PDG_ELECTRON)
_GAMMA = ParticleHypothesis(name="gamma", mass=MASS_GAMMA, pdg_id=PDG_GAMMA)
_K0SHORT = ParticleHypothesis(name="K0S", mass=MASS_K0SHORT, pdg_id=PDG_K0SHORT)
_K0 = ParticleHypothesis(name="K0", mass=MASS_KAON_NEUTRAL, pdg_id=311)
_LAMBDA = ParticleHypothesis(name="Lambda", mass=MASS_LAMBDA, pdg_id=3122)
_PI0 = ParticleHypothesis(name="pi0", mass=0.1349768, pdg_id=111)
_ETA = ParticleHypothesis(name="eta", mass=0.547862, pdg_id=221)
_KSTAR0 = ParticleHypothesis(name="K*0", mass=0.89555, pdg_id=PDG_KSTAR0)
_KSTAR_PLUS = ParticleHypothesis(name="K*+", mass=0.89167, pdg_id=323)

_NAME_TO_HYPOTHESIS: dict[str, ParticleHypothesis] = {
    "pi": _PION,
    "pion": _PION,
    "p": _PROTON,
    "proton": _PROTON,
    "e": _ELECTRON,
    "electron": _ELECTRON,
    "gamma": _GAMMA,
    "photon": _GAMMA,
    "k0s": _K0SHORT,
    "k0short": _K0SHORT,
    "k0": _K0,
    "lambda": _LAMBDA,
    "pi0": _PI0,
    "eta": _ETA,
    "k*0": _KSTAR0,
    "kstar0": _KSTAR0,
    "k*+": _KSTAR_PLUS,
}

_PDG_TO_HYPOTHESIS: dict[int, ParticleHypothesis] = {
    abs(h.pdg_id): h for h in _NAME_TO_HYPOTHESIS.values() if h.pdg_id is not None
}


def make_k0short() -> ParticleHypothesis:
    """Return the K0S mass hypothesis."""
    return _K0SHORT


def make_neutral_kaon() -> ParticleHypothesis:
    """Return the neutral-kaon hypothesis used for the pair mass."""
    return _K0


def make_gamma() -> ParticleHypothesis:
    """Return the massless photon hypothesis."""
    return _GAMMA


def make_lambda() -> ParticleHypothesis:
    return _LAMBDA


def particle_hypothesis_from_name(name: str) -> ParticleHypothesis:
    """Resolve a short particle name (e.g. `K0S`, `gamma`) into a hypothesis."""
    key = name.strip().lower()
    try:
        return _NAME_TO_HYPOTHESIS[key]
    except KeyError as exc:
        supported = ", ".join(sorted(_NAME_TO_HYPOTHESIS))
        raise ValueError(
            f"Unknown particle hypothesis name '{name}'. Supported names: {supported}"
        ) from exc


def particle_hypothesis_from_pdg(pdg_code: int) -> ParticleHypothesis | None:
    """Look up a hypothesis by PDG code (sign ignored). Return `None` if unknown."""
    return _PDG_TO_HYPOTHESIS.get(abs(int(pdg_code)))
