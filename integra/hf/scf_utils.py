from __future__ import annotations

"""Numeric building blocks shared by the SCF drivers.

All routines operate on dense NumPy arrays in the AO basis. Densities are
total (spin-summed) densities, D = C diag(occ) C^T with occ = 2 for doubly
occupied orbitals.
"""

from typing import Any

import numpy as np


def _symmetrize(A):
    return 0.5 * (A + A.T)


def orthogonalizer_from_S(S, *, eps: float = 1e-12) -> np.ndarray:
    """Return X = S^{-1/2} such that X.T @ S @ X = I (symmetric orthogonalization)."""

    S = _symmetrize(np.asarray(S, dtype=np.float64))
    s, U = np.linalg.eigh(S)
    if np.any(s <= eps):
        raise ValueError("S is not positive definite (small/negative eigenvalues)")
    return (U * s ** (-0.5)) @ U.T


def gen_eigh_with_X(F, X) -> tuple[np.ndarray, np.ndarray]:
    """Solve F C = S C eps given an orthogonalizer X from S; returns (eps, C)."""

    F = _symmetrize(np.asarray(F, dtype=np.float64))
    Fp = _symmetrize(X.T @ F @ X)
    e, Cp = np.linalg.eigh(Fp)
    return e, X @ Cp


def occ_rhf(nelec: int, nao: int) -> tuple[np.ndarray, int]:
    nelec = int(nelec)
    if nelec < 0 or nelec % 2 != 0:
        raise ValueError(f"RHF requires an even nelec >= 0, got {nelec}")
    nocc = nelec // 2
    if nocc > int(nao):
        raise ValueError(f"nelec/2 = {nocc} exceeds number of orbitals ({nao})")
    occ = np.zeros((nao,), dtype=np.float64)
    occ[:nocc] = 2.0
    return occ, nocc


def density_from_C_occ(C, occ) -> np.ndarray:
    C = np.asarray(C, dtype=np.float64)
    occ = np.asarray(occ, dtype=np.float64).ravel()
    if C.ndim != 2:
        raise ValueError("C must be 2D")
    if occ.shape != (C.shape[1],):
        raise ValueError(f"occ must have shape ({C.shape[1]},), got {tuple(occ.shape)}")
    return _symmetrize((C * occ[None, :]) @ C.T)


def rms(A) -> float:
    A = np.asarray(A)
    return float(np.sqrt(np.mean(A * A))) if A.size else 0.0


def fock_error(F, D, S) -> np.ndarray:
    """Commutator residual FDS - SDF; zero at self-consistency."""

    return F @ D @ S - S @ D @ F


def rhf_energy(D, h, F) -> float:
    """Electronic RHF energy ½ tr[D (h + F)]."""

    return float(0.5 * np.einsum("ij,ji->", D, h + F))


def core_guess_fock(h, S) -> np.ndarray:
    return np.asarray(h, dtype=np.float64)


def gwh_guess_fock(h, S, *, k: float = 1.75) -> np.ndarray:
    """Generalized Wolfsberg-Helmholz guess: F_ij = k/2 S_ij (h_ii + h_jj), F_ii = h_ii."""

    h = np.asarray(h, dtype=np.float64)
    S = np.asarray(S, dtype=np.float64)
    d = np.diag(h)
    F = 0.5 * float(k) * S * (d[:, None] + d[None, :])
    F[np.diag_indices_from(F)] = d
    return F


GUESSES = {
    "core": core_guess_fock,
    "gwh": gwh_guess_fock,
}


def oda_step(D0, F0, D1, F1) -> float:
    """Optimal-damping coefficient λ ∈ [0, 1] for D(λ) = D0 + λ (D1 - D0).

    With F linear in D, the RHF energy along the line is exactly quadratic::

        E(λ) = E(0) + λ s + λ² c,  s = tr[F0 ΔD],  c = ½ tr[(F1 - F0) ΔD]
    """

    dD = D1 - D0
    s = float(np.einsum("ij,ji->", F0, dD))
    c = 0.5 * float(np.einsum("ij,ji->", F1 - F0, dD))
    if c <= 0.0:
        # Concave (or flat) along the line: the minimum sits on an endpoint.
        return 1.0 if s + c < 0.0 else 0.0
    return float(min(1.0, max(0.0, -0.5 * s / c)))


class DIIS:
    """Pulay extrapolation of Fock matrices from commutator error vectors."""

    def __init__(self, max_vec: int = 8):
        self.max_vec = int(max_vec)
        self._F: list[Any] = []
        self._e: list[Any] = []

    def __len__(self) -> int:
        return len(self._F)

    def reset(self) -> None:
        self._F.clear()
        self._e.clear()

    def push(self, F, e):
        self._F.append(F)
        self._e.append(e)
        if len(self._F) > self.max_vec:
            self._F.pop(0)
            self._e.pop(0)

    def extrapolate(self):
        if len(self._F) < 2:
            return self._F[-1]
        n = len(self._F)

        # B[i,j] = <e_i | e_j> bordered by the Lagrange constraint Σ c_i = 1.
        E = np.stack([np.ravel(e) for e in self._e], axis=0)
        B = np.empty((n + 1, n + 1), dtype=np.float64)
        B[:n, :n] = E @ E.T
        B[:n, n] = -1.0
        B[n, :n] = -1.0
        B[n, n] = 0.0

        rhs = np.zeros((n + 1,), dtype=np.float64)
        rhs[n] = -1.0
        coeff = np.linalg.solve(B, rhs)[:n]
        return np.tensordot(coeff, np.stack(self._F, axis=0), axes=(0, 0))


__all__ = [
    "DIIS",
    "GUESSES",
    "core_guess_fock",
    "density_from_C_occ",
    "fock_error",
    "gen_eigh_with_X",
    "gwh_guess_fock",
    "oda_step",
    "occ_rhf",
    "orthogonalizer_from_S",
    "rhf_energy",
    "rms",
]
