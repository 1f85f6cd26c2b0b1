from __future__ import annotations

"""SCF front-end wrapper.

Ties together `Options`, the AO `IntegralHelper` and the RHF solver for the
common case of "molecule in, converged wave function out".
"""

from typing import Any

from integra.hf.rhf import RHF, RHFSolver
from integra.integrals.helper import IntegralHelper
from integra.integrals.kinds import Orbitals
from integra.integrals.provider import IntegralProvider
from integra.options import Options

from .molecule import Molecule


def run_rhf(
    mol: Molecule,
    options: Options | None = None,
    *,
    provider: IntegralProvider | None = None,
    normalize: bool = False,
    profile: dict | None = None,
    **overrides: Any,
) -> RHF:
    """Run RHF on `mol`.

    ``overrides`` are option fields applied on top of ``options`` (or the
    defaults), e.g. ``run_rhf(mol, basis="cc-pvdz", df=True)``.
    """

    opts = Options() if options is None else options
    if overrides:
        opts = opts.replace(**overrides)
    aoints = IntegralHelper(mol, opts, orbitals=Orbitals.ATOMIC, normalize=normalize, provider=provider)
    return RHFSolver(mol, opts, aoints=aoints).run(profile=profile)


__all__ = ["run_rhf"]
