from __future__ import annotations

"""AO -> MO integral transforms for restricted orbitals.

Block labels
------------
Four-index blocks are 4-letter O/V words ("OOOO", "OOOV", "OVOV", "OOVV",
"OVVV", "VVVV", ...). Letters select the occupied or virtual coefficient slice
for each index, in chemist order (pq|rs)::

    X[p,q,r,s] = Σ_{μνρσ} (μν|ρσ) C1[μ,p] C2[ν,q] C3[ρ,r] C4[σ,s]

With ``phys=True`` the label is read in physicist order <pq|rs>. The chemist
block for ``L[0] L[2] L[1] L[3]`` is contracted and its middle two axes are
swapped, so that ``X_phys[p,q,r,s] = (pr|qs)``.

Three-index blocks are "B" plus two O/V letters ("BOV", "BOO", "BVV", "BVO").
They are contracted from the RI-fitted AO factors::

    B[P,p,q] = Σ_{μν} B_AO[P,μ,ν] C1[μ,p] C2[ν,q]

Active space
------------
The occupied slice is ``C[:, drop_occ:ndocc]`` and the virtual slice is
``C[:, ndocc:nmo - drop_vir]``.
"""

from dataclasses import dataclass, field
import logging
from typing import Any

import numpy as np

from integra.errors import InvalidOptionError, UnsupportedIntegralError
from integra.frontend.molecule import Molecule
from integra.options import Options
from integra.utils.einsum_cache import cached_einsum

from .helper import IntegralHelper

logger = logging.getLogger(__name__)

_OV = frozenset("OV")
_ERI4_SUBSCRIPTS = "mnls,mp,nq,lr,st->pqrt"
_ERI3_SUBSCRIPTS = "Pmn,mp,nq->Ppq"


@dataclass(frozen=True, eq=False)
class RestrictedOrbitals:
    """Spatial orbitals shared by both spins: ``C`` is (nao, nmo), AO rows, MO columns."""

    C: np.ndarray
    basis: str = "undef"
    name: str = "Custom"
    molecule: Molecule | None = None
    mo_energy: np.ndarray | None = field(default=None, repr=False)

    @property
    def nao(self) -> int:
        return int(self.C.shape[0])

    @property
    def nmo(self) -> int:
        return int(self.C.shape[1])


def parse_mo_label(label: str) -> str:
    """Normalize an MO block label, raising `UnsupportedIntegralError` if invalid."""

    lab = str(label).strip().upper()
    if len(lab) == 4 and set(lab) <= _OV:
        return lab
    if len(lab) == 3 and lab[0] == "B" and set(lab[1:]) <= _OV:
        return lab
    raise UnsupportedIntegralError(f"unsupported MO integral block: {label!r}")


class MOIntegralHelper:
    """Lazily computed MO-basis integral blocks.

    Bounds on the frozen counts are checked here, before any contraction:
    ``drop_occ < 2 * ndocc`` and ``drop_vir < 2 * nvir``.
    """

    def __init__(
        self,
        orbitals: RestrictedOrbitals,
        ndocc: int,
        *,
        options: Options | None = None,
        drop_occ: int | None = None,
        drop_vir: int | None = None,
        phys: bool = False,
        dtype: Any = None,
        aoints: IntegralHelper | None = None,
    ):
        opts = Options() if options is None else options
        C = np.asarray(orbitals.C)
        if C.ndim != 2:
            raise ValueError("orbital coefficients must be a 2D (nao, nmo) array")
        nmo = int(C.shape[1])
        ndocc = int(ndocc)
        if ndocc < 0 or ndocc > nmo:
            raise ValueError(f"ndocc must be in [0, {nmo}], got {ndocc}")

        self.orbitals = orbitals
        self.ndocc = ndocc
        self.nvir = nmo - ndocc
        self.phys = bool(phys)
        self.drop_occ = int(opts.drop_occ if drop_occ is None else drop_occ)
        self.drop_vir = int(opts.drop_vir if drop_vir is None else drop_vir)
        self.dtype = np.dtype(opts.dtype if dtype is None else dtype)

        if self.drop_occ < 0 or self.drop_occ >= 2 * self.ndocc:
            raise InvalidOptionError(f"too many core electrons ({self.drop_occ}) for Ne = {2 * self.ndocc}.")
        if self.drop_vir < 0 or self.drop_vir >= 2 * self.nvir:
            raise InvalidOptionError(
                f"too many inactive orbitals ({self.drop_vir}) for # virtuals = {2 * self.nvir}."
            )

        self._Co = np.ascontiguousarray(C[:, self.drop_occ : self.ndocc], dtype=self.dtype)
        self._Cv = np.ascontiguousarray(C[:, self.ndocc : self.ndocc + self.nvir - self.drop_vir], dtype=self.dtype)
        self._aoints = aoints
        self._cache: dict[str, np.ndarray] = {}

    @property
    def nocc_active(self) -> int:
        return int(self._Co.shape[1])

    @property
    def nvir_active(self) -> int:
        return int(self._Cv.shape[1])

    def __repr__(self) -> str:
        return (
            f"MOIntegralHelper(ndocc={self.ndocc}, nvir={self.nvir}, drop_occ={self.drop_occ}, "
            f"drop_vir={self.drop_vir}, phys={self.phys}, dtype={self.dtype.name}, cached={list(self._cache)})"
        )

    def _coeff(self, letter: str) -> np.ndarray:
        return self._Co if letter == "O" else self._Cv

    def __getitem__(self, label: str) -> np.ndarray:
        lab = parse_mo_label(label)
        hit = self._cache.get(lab)
        if hit is not None:
            return hit
        if self._aoints is None:
            raise UnsupportedIntegralError(f"MO block {lab!r} was not computed and no AO integrals are attached")
        return self.compute(lab, self._aoints)

    def __setitem__(self, label: str, value) -> None:
        self._cache[parse_mo_label(label)] = np.asarray(value)

    def __contains__(self, label: str) -> bool:
        try:
            return parse_mo_label(label) in self._cache
        except UnsupportedIntegralError:
            return False

    def keys(self) -> list[str]:
        return list(self._cache)

    def invalidate(self, *labels: str) -> None:
        if not labels:
            self._cache.clear()
            return
        for label in labels:
            self._cache.pop(parse_mo_label(label), None)

    def compute(self, label: str, aoints: IntegralHelper) -> np.ndarray:
        """Contract block `label` from `aoints` and store it."""

        lab = parse_mo_label(label)
        if len(lab) == 4:
            out = self._eri4(lab, aoints)
        else:
            out = self._eri3(lab, aoints)
        self._cache[lab] = out
        logger.info("computed MO %s: shape=%s", lab, tuple(out.shape))
        return out

    def _eri4(self, lab: str, aoints: IntegralHelper) -> np.ndarray:
        chem = lab[0] + lab[2] + lab[1] + lab[3] if self.phys else lab
        A = np.asarray(aoints["ERI"])
        if A.dtype != self.dtype:
            A = A.astype(self.dtype)
        out = cached_einsum(_ERI4_SUBSCRIPTS, A, *(self._coeff(c) for c in chem))
        if self.phys:
            out = out.transpose(0, 2, 1, 3)
        return np.ascontiguousarray(out)

    def _eri3(self, lab: str, aoints: IntegralHelper) -> np.ndarray:
        B = np.asarray(aoints["RIERI"])
        if B.dtype != self.dtype:
            B = B.astype(self.dtype)
        out = cached_einsum(_ERI3_SUBSCRIPTS, B, self._coeff(lab[1]), self._coeff(lab[2]))
        return np.ascontiguousarray(out)


def ao_to_mo(
    aoints: IntegralHelper,
    orbitals: RestrictedOrbitals,
    *labels: str,
    ndocc: int | None = None,
    phys: bool = False,
    options: Options | None = None,
    drop_occ: int | None = None,
    drop_vir: int | None = None,
) -> MOIntegralHelper:
    """Build an `MOIntegralHelper` holding `labels`, then release `aoints`.

    The AO cache is consumed: on return it is empty and the MO helper keeps
    no reference to it. ``ndocc`` defaults to half the electron count of
    ``aoints.molecule`` (closed shell). ``options`` defaults to
    ``aoints.options``, so frozen counts configured on the cache apply here.
    """

    labs = [parse_mo_label(lab) for lab in labels]
    if options is None:
        options = aoints.options
    if ndocc is None:
        nelec = int(aoints.molecule.nelectron)
        if nelec % 2 != 0:
            raise ValueError(f"restricted orbitals require an even electron count, got {nelec}")
        ndocc = nelec // 2

    moints = MOIntegralHelper(
        orbitals,
        ndocc,
        options=options,
        drop_occ=drop_occ,
        drop_vir=drop_vir,
        phys=phys,
        dtype=aoints.dtype,
    )
    for lab in labs:
        moints.compute(lab, aoints)
    aoints.release()
    return moints


__all__ = ["MOIntegralHelper", "RestrictedOrbitals", "ao_to_mo", "parse_mo_label"]
