from __future__ import annotations

"""Restricted Hartree-Fock driven by an AO `IntegralHelper`.

Control flow
------------
``INITIALIZING``  fetch S/T/V and the two-electron integrals from the cache,
                  build X = S^{-1/2} and the guess density
``ITERATING``     Fock build, acceleration (ODA early, DIIS afterwards),
                  diagonalization, new density, convergence test
``CONVERGED``     an immutable `RHF` record is returned
``FAILED``        `SCFConvergenceError` is raised, no record is produced

Convergence requires both ``|ΔE| < scf_e_conv`` and
``RMS(ΔD) < scf_max_rms`` within ``scf_max_iter`` cycles.
"""

from dataclasses import dataclass
import enum
import logging
import time
from typing import Any, Callable

import numpy as np

from integra.errors import InvalidOptionError, SCFConvergenceError
from integra.frontend.molecule import Molecule
from integra.integrals.helper import IntegralHelper
from integra.integrals.kinds import ERIKind, Orbitals
from integra.integrals.mo import RestrictedOrbitals
from integra.integrals.provider import IntegralProvider
from integra.options import Options

from . import jk as _jk
from .scf_utils import (
    DIIS,
    GUESSES,
    density_from_C_occ,
    fock_error,
    gen_eigh_with_X,
    oda_step,
    occ_rhf,
    orthogonalizer_from_S,
    rhf_energy,
    rms,
)

logger = logging.getLogger(__name__)

_ERI_KEY = {ERIKind.EXACT: "ERI", ERIKind.JKFIT: "JKERI", ERIKind.RIFIT: "RIERI"}


class SCFState(enum.Enum):
    INITIALIZING = "initializing"
    ITERATING = "iterating"
    CONVERGED = "converged"
    FAILED = "failed"


@dataclass(frozen=True, eq=False)
class RHF:
    """Converged RHF wave function.

    molecule    Molecule the wave function was computed for
    energy      total RHF energy (Hartree)
    ndocc       doubly occupied spatial orbitals
    nvir        virtual spatial orbitals
    orbitals    canonical RHF orbitals (with orbital energies)
    """

    molecule: Molecule
    energy: float
    ndocc: int
    nvir: int
    orbitals: RestrictedOrbitals
    converged: bool
    niter: int
    e_nuc: float

    @classmethod
    def solve(
        cls,
        molecule: Molecule,
        options: Options | None = None,
        *,
        aoints: IntegralHelper | None = None,
        provider: IntegralProvider | None = None,
        guess=None,
        profile: dict | None = None,
    ) -> "RHF":
        """Run one RHF calculation; ``guess`` is an optional initial AO density."""

        solver = RHFSolver(molecule, options, aoints=aoints, provider=provider, dm0=guess)
        return solver.run(profile=profile)


@dataclass
class SCFContext:
    S: np.ndarray
    h: np.ndarray
    X: np.ndarray
    occ: np.ndarray
    nocc: int
    e_nuc: float
    D0: np.ndarray
    jk: Callable[[np.ndarray], tuple[np.ndarray, np.ndarray]]


@dataclass
class SCFOutcome:
    converged: bool
    niter: int
    energy: float
    delta_e: float
    delta_d: float
    mo_energy: Any = None
    mo_coeff: Any = None


def _ms_since(t0: float) -> float:
    return (time.perf_counter() - t0) * 1e3


class ConventionalRHF:
    """In-core Roothaan iterations with optimal damping followed by DIIS."""

    name = "conventional"

    def iterate(self, ctx: SCFContext, opts: Options, profile: dict | None = None) -> SCFOutcome:
        h, S, X, occ = ctx.h, ctx.S, ctx.X, ctx.occ
        diis = DIIS(max_vec=opts.ndiis) if opts.diis else None
        oda = bool(opts.oda)

        D = ctx.D0
        D_prev = F_prev = None
        e_prev = None
        E = dE = dD = float("nan")
        eps = C = None

        it = 0
        for it in range(1, int(opts.scf_max_iter) + 1):
            t = time.perf_counter()
            J, K = ctx.jk(D)
            if profile is not None:
                profile["jk_ms"] = profile.get("jk_ms", 0.0) + _ms_since(t)
            F = h + J - 0.5 * K

            tag = ""
            if oda and D_prev is not None:
                lam = oda_step(D_prev, F_prev, D, F)
                D = D_prev + lam * (D - D_prev)
                F = F_prev + lam * (F - F_prev)
                tag = f"ODA({lam:.3f})"
            E = rhf_energy(D, h, F) + ctx.e_nuc

            F_diag = F
            if not oda and diis is not None:
                diis.push(F, fock_error(F, D, S))
                try:
                    F_try = diis.extrapolate()
                except np.linalg.LinAlgError:
                    F_try = None
                if F_try is None or not np.all(np.isfinite(F_try)):
                    diis.reset()
                    tag = "DIIS(reset)"
                else:
                    F_diag = F_try
                    tag = f"DIIS({len(diis)})"

            t = time.perf_counter()
            eps, C = gen_eigh_with_X(F_diag, X)
            if profile is not None:
                profile["diag_ms"] = profile.get("diag_ms", 0.0) + _ms_since(t)
            D_new = density_from_C_occ(C, occ)

            dD = rms(D_new - D)
            dE = abs(E - e_prev) if e_prev is not None else float("inf")
            logger.info("RHF iter %3d  E = %.12f  dE = %.3e  dD = %.3e  %s", it, E, dE, dD, tag)

            if dE < float(opts.scf_e_conv) and dD < float(opts.scf_max_rms):
                return SCFOutcome(True, it, E, dE, dD, eps, C)

            if oda and (dD < float(opts.oda_cutoff) or it >= int(opts.oda_shutoff)):
                oda = False
                logger.debug("ODA turned off at iteration %d (dD = %.3e)", it, dD)

            D_prev, F_prev = D, F
            D = D_new
            e_prev = E

        return SCFOutcome(False, it, E, dE, dD, eps, C)


IMPLEMENTED: tuple[Any, ...] = (ConventionalRHF(),)


def get_scf_alg(n: int):
    """Return the ``n``-th (1-based) implemented RHF algorithm."""

    n = int(n)
    if not 1 <= n <= len(IMPLEMENTED):
        raise InvalidOptionError(f"implementation number {n} not available for RHF.")
    return IMPLEMENTED[n - 1]


class RHFSolver:
    """One RHF calculation.

    Parameters
    ----------
    molecule : Molecule
    options : Options, optional
    aoints : IntegralHelper, optional
        AO integrals to consume. Built from ``options`` (atomic orbitals)
        when omitted.
    provider : IntegralProvider, optional
        Only used when ``aoints`` is omitted.
    dm0, mo_coeff0 : array, optional
        Initial density or orbitals. Otherwise ``options.scf_guess`` is used.
    """

    def __init__(
        self,
        molecule: Molecule,
        options: Options | None = None,
        *,
        aoints: IntegralHelper | None = None,
        provider: IntegralProvider | None = None,
        dm0=None,
        mo_coeff0=None,
    ):
        if options is None:
            options = aoints.options if aoints is not None else Options()
        self.options = options
        self.algorithm = get_scf_alg(self.options.scf_alg)
        nelec = int(molecule.nelectron)
        if nelec < 0 or nelec % 2 != 0:
            raise ValueError(f"RHF requires an even nelec >= 0, got {nelec}")
        self.molecule = molecule
        if aoints is None:
            aoints = IntegralHelper(molecule, self.options, orbitals=Orbitals.ATOMIC, provider=provider)
        self.aoints = aoints
        self.dm0 = dm0
        self.mo_coeff0 = mo_coeff0
        self.state = SCFState.INITIALIZING

    def _initialize(self) -> SCFContext:
        ints = self.aoints
        S = np.asarray(ints["S"], dtype=np.float64)
        h = np.asarray(ints["T"], dtype=np.float64) + np.asarray(ints["V"], dtype=np.float64)
        nao = int(S.shape[0])
        if S.shape != (nao, nao) or h.shape != (nao, nao):
            raise ValueError("S/T/V must be (nao, nao)")

        key = _ERI_KEY[ints.eri_kind]
        eri = ints[key]
        if ints.eri_kind is ERIKind.EXACT:
            jk = lambda D: _jk.dense_JK(eri, D)  # noqa: E731
        else:
            jk = lambda D: _jk.df_JK(eri, D)  # noqa: E731

        X = orthogonalizer_from_S(S)
        occ, nocc = occ_rhf(self.molecule.nelectron, nao)

        if self.dm0 is not None:
            D0 = np.asarray(self.dm0, dtype=np.float64)
            if D0.shape != (nao, nao):
                raise ValueError("dm0 must have shape (nao, nao)")
            D0 = 0.5 * (D0 + D0.T)
        elif self.mo_coeff0 is not None:
            C0 = np.asarray(self.mo_coeff0, dtype=np.float64)
            if C0.shape != (nao, nao):
                raise ValueError("mo_coeff0 must have shape (nao, nao)")
            D0 = density_from_C_occ(C0, occ)
        else:
            F0 = GUESSES[self.options.scf_guess](h, S)
            _e0, C0 = gen_eigh_with_X(F0, X)
            D0 = density_from_C_occ(C0, occ)

        logger.info(
            "RHF setup: nao=%d ndocc=%d basis=%s eri=%s (%s) guess=%s",
            nao,
            nocc,
            ints.basis,
            ints.eri_kind.name,
            key,
            "dm0" if self.dm0 is not None else ("mo_coeff0" if self.mo_coeff0 is not None else self.options.scf_guess),
        )
        return SCFContext(
            S=S, h=h, X=X, occ=occ, nocc=nocc, e_nuc=float(self.molecule.energy_nuc()), D0=D0, jk=jk
        )

    def run(self, profile: dict | None = None) -> RHF:
        """Iterate to self-consistency; raises `SCFConvergenceError` on failure."""

        if self.state is not SCFState.INITIALIZING:
            raise RuntimeError(f"RHF solver already ran (state: {self.state.name})")
        ctx = self._initialize()
        self.state = SCFState.ITERATING
        out = self.algorithm.iterate(ctx, self.options, profile=profile)
        if profile is not None:
            profile["iters"] = int(out.niter)

        if not out.converged:
            self.state = SCFState.FAILED
            msg = (
                f"RHF did not converge in {out.niter} iterations "
                f"(scf_max_iter={self.options.scf_max_iter}, dE={out.delta_e:.3e}, dD={out.delta_d:.3e})"
            )
            logger.warning(msg)
            raise SCFConvergenceError(msg, niter=out.niter, energy=out.energy, delta_e=out.delta_e, delta_d=out.delta_d)

        self.state = SCFState.CONVERGED
        nmo = int(out.mo_coeff.shape[1])
        orbitals = RestrictedOrbitals(
            C=out.mo_coeff,
            basis=self.aoints.basis,
            name="RHF",
            molecule=self.molecule,
            mo_energy=out.mo_energy,
        )
        logger.info("RHF converged in %d iterations: E = %.12f", out.niter, out.energy)
        return RHF(
            molecule=self.molecule,
            energy=float(out.energy),
            ndocc=int(ctx.nocc),
            nvir=nmo - int(ctx.nocc),
            orbitals=orbitals,
            converged=True,
            niter=int(out.niter),
            e_nuc=float(ctx.e_nuc),
        )


__all__ = ["ConventionalRHF", "IMPLEMENTED", "RHF", "RHFSolver", "SCFState", "get_scf_alg"]
