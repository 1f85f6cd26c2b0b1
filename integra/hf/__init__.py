"""Hartree-Fock (SCF) drivers.

The drivers consume AO integrals through an `integra.integrals.IntegralHelper`,
either exact 4-index ERIs or JK-fitted 3-index factors.
"""

from __future__ import annotations

from .jk import dense_JK, df_JK
from .rhf import RHF, RHFSolver, SCFState, get_scf_alg

__all__ = [
    "RHF",
    "RHFSolver",
    "SCFState",
    "dense_JK",
    "df_JK",
    "get_scf_alg",
]
