from __future__ import annotations

"""Integral evaluation providers.

A provider turns (molecule, basis[, auxiliary basis], normalize) into raw AO
integral arrays. The cache layer never evaluates Gaussian integrals itself; it
only orchestrates provider calls and keeps the results.

`PySCFProvider` is the default bridge and keeps all PySCF-specific handling in
this module.

Array conventions
- one-electron:  (nao, nao)
- ``eri``:       (nao, nao, nao, nao), chemist order (μν|ρσ)
- ``fitted_eri``: (naux, nao, nao), whitened so that
  (μν|ρσ) ~= Σ_P B[P,μ,ν] B[P,ρ,σ]
"""

import logging
from typing import Any, Protocol, runtime_checkable

import numpy as np
import scipy.linalg

from integra.frontend.molecule import Molecule

logger = logging.getLogger(__name__)


@runtime_checkable
class IntegralProvider(Protocol):
    def overlap(self, mol: Molecule, basis: str, normalize: bool) -> np.ndarray: ...

    def kinetic(self, mol: Molecule, basis: str, normalize: bool) -> np.ndarray: ...

    def nuclear(self, mol: Molecule, basis: str, normalize: bool) -> np.ndarray: ...

    def eri(self, mol: Molecule, basis: str, normalize: bool) -> np.ndarray: ...

    def fitted_eri(self, mol: Molecule, basis: str, aux: str, normalize: bool) -> np.ndarray: ...


def whiten_3c2e(eri3: np.ndarray, metric: np.ndarray) -> np.ndarray:
    """Return B[P,μ,ν] = Σ_Q L^{-1}[P,Q] (Q|μν) with metric V = L L^T.

    `eri3` is (nao, nao, naux); `metric` is the (naux, naux) Coulomb metric.
    """

    eri3 = np.asarray(eri3, dtype=np.float64)
    V = np.array(metric, dtype=np.float64, copy=True)
    if eri3.ndim != 3 or V.shape != (eri3.shape[2], eri3.shape[2]):
        raise ValueError("eri3 must be (nao, nao, naux) and metric (naux, naux)")
    nao, naux = int(eri3.shape[0]), int(eri3.shape[2])
    # Near-linear dependencies in fitting sets leave tiny negative eigenvalues.
    V[np.diag_indices_from(V)] += max(float(np.max(np.abs(np.diag(V)))) * 1e-14, 1e-12)
    L = scipy.linalg.cholesky(V, lower=True)
    B = scipy.linalg.solve_triangular(L, eri3.reshape(nao * nao, naux).T, lower=True)
    return np.ascontiguousarray(B.reshape(naux, nao, nao))


class PySCFProvider:
    """Evaluate AO integrals with PySCF.

    ``normalize=True`` rescales every AO to unit self-overlap, which only
    changes Cartesian shells with l >= 2 (PySCF normalizes spherical and
    low-l Cartesian functions already). Fitting functions are not rescaled.
    """

    def __init__(self, *, verbose: int = 0):
        self.verbose = int(verbose)
        self._mols: dict[tuple[Molecule, str], Any] = {}
        self._auxmols: dict[tuple[Molecule, str, str], Any] = {}
        self._scales: dict[tuple[Molecule, str], np.ndarray] = {}

    def _mole(self, mol: Molecule, basis: str):
        key = (mol, str(basis))
        pmol = self._mols.get(key)
        if pmol is None:
            from pyscf import gto  # noqa: PLC0415

            pmol = gto.M(
                atom=mol.atom,
                basis=str(basis),
                unit="Bohr",
                charge=int(mol.charge),
                spin=int(mol.spin),
                cart=bool(mol.cart),
                verbose=self.verbose,
            )
            logger.debug("built PySCF Mole: basis=%s nao=%d", basis, pmol.nao_nr())
            self._mols[key] = pmol
        return pmol

    def _auxmole(self, mol: Molecule, basis: str, aux: str):
        key = (mol, str(basis), str(aux))
        auxmol = self._auxmols.get(key)
        if auxmol is None:
            from pyscf.df import addons  # noqa: PLC0415

            auxmol = addons.make_auxmol(self._mole(mol, basis), str(aux))
            logger.debug("built PySCF auxiliary Mole: aux=%s naux=%d", aux, auxmol.nao_nr())
            self._auxmols[key] = auxmol
        return auxmol

    def _scale(self, mol: Molecule, basis: str) -> np.ndarray:
        key = (mol, str(basis))
        s = self._scales.get(key)
        if s is None:
            S = np.asarray(self._mole(mol, basis).intor("int1e_ovlp"), dtype=np.float64)
            s = 1.0 / np.sqrt(np.diag(S))
            self._scales[key] = s
        return s

    def _int1e(self, name: str, mol: Molecule, basis: str, normalize: bool) -> np.ndarray:
        out = np.asarray(self._mole(mol, basis).intor(name), dtype=np.float64)
        if normalize:
            s = self._scale(mol, basis)
            out = out * s[:, None] * s[None, :]
        return out

    def overlap(self, mol: Molecule, basis: str, normalize: bool) -> np.ndarray:
        return self._int1e("int1e_ovlp", mol, basis, normalize)

    def kinetic(self, mol: Molecule, basis: str, normalize: bool) -> np.ndarray:
        return self._int1e("int1e_kin", mol, basis, normalize)

    def nuclear(self, mol: Molecule, basis: str, normalize: bool) -> np.ndarray:
        return self._int1e("int1e_nuc", mol, basis, normalize)

    def eri(self, mol: Molecule, basis: str, normalize: bool) -> np.ndarray:
        pmol = self._mole(mol, basis)
        nao = int(pmol.nao_nr())
        out = np.asarray(pmol.intor("int2e", aosym="s1"), dtype=np.float64).reshape((nao, nao, nao, nao))
        if normalize:
            s = self._scale(mol, basis)
            out = np.einsum("mnls,m,n,l,s->mnls", out, s, s, s, s, optimize=True)
        return out

    def fitted_eri(self, mol: Molecule, basis: str, aux: str, normalize: bool) -> np.ndarray:
        from pyscf.df import incore  # noqa: PLC0415

        pmol = self._mole(mol, basis)
        auxmol = self._auxmole(mol, basis, aux)
        nao, naux = int(pmol.nao_nr()), int(auxmol.nao_nr())
        eri3 = np.asarray(incore.aux_e2(pmol, auxmol, intor="int3c2e", aosym="s1"), dtype=np.float64)
        eri3 = eri3.reshape((nao, nao, naux))
        B = whiten_3c2e(eri3, auxmol.intor("int2c2e"))
        if normalize:
            s = self._scale(mol, basis)
            B = B * s[None, :, None] * s[None, None, :]
        return B


__all__ = ["IntegralProvider", "PySCFProvider", "whiten_3c2e"]
