from __future__ import annotations

from collections import Counter

import numpy as np
import pytest

from integra.frontend import Molecule


class CountingProvider:
    """Synthetic integrals with exact DF structure: (μν|ρσ) = Σ_P B[P,μ,ν] B[P,ρ,σ]."""

    def __init__(self, nao: int = 6, naux: int = 10, seed: int = 7):
        rng = np.random.default_rng(seed)
        B = rng.normal(size=(naux, nao, nao))
        self.B = 0.5 * (B + B.transpose(0, 2, 1))
        A = rng.normal(size=(nao, nao))
        self.S = A @ A.T + nao * np.eye(nao)
        T = rng.normal(size=(nao, nao))
        self.T = T + T.T
        V = rng.normal(size=(nao, nao))
        self.V = V + V.T
        self.calls: Counter = Counter()

    def _scale(self, normalize: bool) -> float:
        return 2.0 if normalize else 1.0

    def overlap(self, mol, basis, normalize):
        self.calls["overlap"] += 1
        return self.S * self._scale(normalize)

    def kinetic(self, mol, basis, normalize):
        self.calls["kinetic"] += 1
        return self.T * self._scale(normalize)

    def nuclear(self, mol, basis, normalize):
        self.calls["nuclear"] += 1
        return self.V * self._scale(normalize)

    def eri(self, mol, basis, normalize):
        self.calls["eri"] += 1
        return np.einsum("Pmn,Pls->mnls", self.B, self.B) * self._scale(normalize)

    def fitted_eri(self, mol, basis, aux, normalize):
        self.calls["fitted_eri"] += 1
        return self.B * self._scale(normalize)

    @property
    def total_calls(self) -> int:
        return int(sum(self.calls.values()))


# Szabo & Ostlund, Modern Quantum Chemistry, §3.5.2: H2, STO-3G, R = 1.4 bohr.
_H2_S12 = 0.6593
_H2_T = np.array([[0.7600, 0.2365], [0.2365, 0.7600]])
_H2_V = np.array([[-1.8804, -1.1948], [-1.1948, -1.8804]])
_H2_ERI = {"aaaa": 0.7746, "aabb": 0.5697, "abaa": 0.4441, "abab": 0.2970}


def _h2_eri() -> np.ndarray:
    eri = np.empty((2, 2, 2, 2))
    for p in range(2):
        for q in range(2):
            for r in range(2):
                for s in range(2):
                    bra, ket = p == q, r == s
                    if bra and ket:
                        eri[p, q, r, s] = _H2_ERI["aaaa"] if p == r else _H2_ERI["aabb"]
                    elif bra or ket:
                        eri[p, q, r, s] = _H2_ERI["abaa"]
                    else:
                        eri[p, q, r, s] = _H2_ERI["abab"]
    return eri


class H2Provider:
    """Tabulated minimal-basis H2 integrals; fitted factors reproduce the ERIs exactly."""

    def __init__(self):
        self.calls: Counter = Counter()

    def overlap(self, mol, basis, normalize):
        self.calls["overlap"] += 1
        return np.array([[1.0, _H2_S12], [_H2_S12, 1.0]])

    def kinetic(self, mol, basis, normalize):
        self.calls["kinetic"] += 1
        return _H2_T.copy()

    def nuclear(self, mol, basis, normalize):
        self.calls["nuclear"] += 1
        return _H2_V.copy()

    def eri(self, mol, basis, normalize):
        self.calls["eri"] += 1
        return _h2_eri()

    def fitted_eri(self, mol, basis, aux, normalize):
        self.calls["fitted_eri"] += 1
        w, U = np.linalg.eigh(_h2_eri().reshape(4, 4))
        keep = w > 1e-12
        return (np.sqrt(w[keep])[:, None] * U[:, keep].T).reshape(-1, 2, 2)

    @property
    def total_calls(self) -> int:
        return int(sum(self.calls.values()))


@pytest.fixture
def provider():
    return CountingProvider()


@pytest.fixture
def h2_provider():
    return H2Provider()


@pytest.fixture
def h2():
    return Molecule.from_atoms([("H", (0.0, 0.0, 0.0)), ("H", (0.0, 0.0, 1.4))])


@pytest.fixture
def dummy_mol():
    # Six electrons -> three doubly occupied orbitals in the 6-AO synthetic basis.
    return Molecule.from_atoms("Li 0 0 0; H 0 0 3.0; H 0 0 -3.0", charge=-1)


class HubbardProvider:
    """Six-site open chain with site disorder and on-site repulsion in an orthonormal basis.

    Half filling has a clear gap and a unique RHF solution, but the GWH guess
    (diagonal h for S = I) puts the electrons on the three lowest sites, so
    damping and extrapolation both have work to do.
    """

    SITE = np.array([0.3, -0.2, 0.5, -0.4, 0.1, -0.3])

    def __init__(self, t: float = 1.0, U: float = 0.5):
        n = len(self.SITE)
        h = np.diag(self.SITE).astype(np.float64)
        for i in range(n - 1):
            h[i, i + 1] = h[i + 1, i] = -t
        self.h = h
        self.U = float(U)
        self.calls: Counter = Counter()

    def overlap(self, mol, basis, normalize):
        self.calls["overlap"] += 1
        return np.eye(len(self.SITE))

    def kinetic(self, mol, basis, normalize):
        self.calls["kinetic"] += 1
        return self.h.copy()

    def nuclear(self, mol, basis, normalize):
        self.calls["nuclear"] += 1
        return np.zeros_like(self.h)

    def eri(self, mol, basis, normalize):
        self.calls["eri"] += 1
        n = len(self.SITE)
        eri = np.zeros((n, n, n, n))
        for i in range(n):
            eri[i, i, i, i] = self.U
        return eri

    def fitted_eri(self, mol, basis, aux, normalize):
        self.calls["fitted_eri"] += 1
        n = len(self.SITE)
        B = np.zeros((n, n, n))
        for i in range(n):
            B[i, i, i] = np.sqrt(self.U)
        return B

    @property
    def total_calls(self) -> int:
        return int(sum(self.calls.values()))


@pytest.fixture
def hubbard_provider():
    return HubbardProvider()
