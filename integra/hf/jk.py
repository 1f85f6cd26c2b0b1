from __future__ import annotations

"""Coulomb/exchange contractions.

Two ERI layouts are supported:

- exact AO ERIs ``eri[μ,ν,λ,σ] = (μν|λσ)``, shape (nao, nao, nao, nao)
- fitted factors ``B[Q,μ,ν]``, shape (naux, nao, nao), with
  (μν|λσ) ~= Σ_Q B[Q,μ,ν] B[Q,λ,σ]
"""

import numpy as np

from integra.utils.einsum_cache import cached_einsum

from .scf_utils import _symmetrize


def _check_D(D, nao: int | None = None):
    D = np.asarray(D, dtype=np.float64)
    if D.ndim != 2 or int(D.shape[0]) != int(D.shape[1]):
        raise ValueError("D must be a square 2D matrix")
    if nao is not None and int(D.shape[0]) != int(nao):
        raise ValueError(f"D must be ({nao},{nao}), got {tuple(D.shape)}")
    return D


def dense_JK(eri, D) -> tuple[np.ndarray, np.ndarray]:
    """J and K from a dense 4-index AO ERI tensor and an AO density D."""

    eri = np.asarray(eri)
    if eri.ndim != 4 or len(set(eri.shape)) != 1:
        raise ValueError(f"eri must have shape (nao, nao, nao, nao), got {tuple(eri.shape)}")
    D = _check_D(D, eri.shape[0]).astype(eri.dtype, copy=False)

    J = cached_einsum("mnls,ls->mn", eri, D)
    # K_mn = Σ_ls D_ls (m l | n s)
    K = cached_einsum("mlns,ls->mn", eri, D)
    return _symmetrize(np.asarray(J, dtype=np.float64)), _symmetrize(np.asarray(K, dtype=np.float64))


def df_JK(B, D) -> tuple[np.ndarray, np.ndarray]:
    """J and K from fitted factors B[Q,μ,ν] and an AO density D."""

    B = np.asarray(B)
    if B.ndim != 3 or B.shape[1] != B.shape[2]:
        raise ValueError(f"B must have shape (naux, nao, nao), got {tuple(B.shape)}")
    naux, nao = int(B.shape[0]), int(B.shape[1])
    D = _check_D(D, nao).astype(B.dtype, copy=False)

    # J_mn = Σ_Q B_Q,mn Σ_ls D_ls B_Q,ls
    B2 = B.reshape((naux, nao * nao))
    v = B2 @ D.reshape((nao * nao,))
    J = (v @ B2).reshape((nao, nao))

    # K = Σ_Q B_Q D B_Q^T via batched GEMMs.
    K = np.matmul(np.matmul(B, D), B.transpose((0, 2, 1))).sum(axis=0)
    return _symmetrize(np.asarray(J, dtype=np.float64)), _symmetrize(np.asarray(K, dtype=np.float64))


__all__ = ["dense_JK", "df_JK"]
