from __future__ import annotations

"""Closed variant sets for orbital representations, ERI kinds and AO cache keys.

`STRATEGIES` maps every `IntegralKey` to the shape of the provider call that
computes it. The table is checked for completeness at import time, so adding a
key without a strategy fails on import instead of at the first lookup.
"""

from dataclasses import dataclass
import enum
import re

from integra.errors import UnsupportedIntegralError


class Orbitals(enum.Enum):
    ATOMIC = "atomic"
    RESTRICTED = "restricted"
    UNRESTRICTED = "unrestricted"


class ERIKind(enum.Enum):
    EXACT = "exact"
    JKFIT = "jkfit"
    RIFIT = "rifit"

    @property
    def fitted(self) -> bool:
        return self is not ERIKind.EXACT


class IntegralKey(enum.Enum):
    S = "S"
    T = "T"
    V = "V"
    ERI = "ERI"
    JKERI = "JKERI"
    RIERI = "RIERI"

    @classmethod
    def parse(cls, label: "str | IntegralKey") -> "IntegralKey":
        if isinstance(label, cls):
            return label
        try:
            return cls(str(label).strip().upper())
        except ValueError:
            raise UnsupportedIntegralError(f"unsupported integral kind for IntegralHelper: {label!r}") from None


@dataclass(frozen=True)
class Strategy:
    """How one AO cache key is produced.

    method:    provider method name
    fitted:    call takes the auxiliary basis (``fitted_eri``)
    requires:  ERI kind the helper must be configured with, or None
    """

    method: str
    fitted: bool = False
    requires: ERIKind | None = None


STRATEGIES: dict[IntegralKey, Strategy] = {
    IntegralKey.S: Strategy("overlap"),
    IntegralKey.T: Strategy("kinetic"),
    IntegralKey.V: Strategy("nuclear"),
    IntegralKey.ERI: Strategy("eri"),
    IntegralKey.JKERI: Strategy("fitted_eri", fitted=True, requires=ERIKind.JKFIT),
    IntegralKey.RIERI: Strategy("fitted_eri", fitted=True, requires=ERIKind.RIFIT),
}

_missing = set(IntegralKey) - set(STRATEGIES)
if _missing:  # pragma: no cover
    raise ImportError(f"IntegralKey members without a compute strategy: {sorted(k.name for k in _missing)}")
del _missing


def select_eri_kind(df: bool, orbitals: Orbitals) -> ERIKind:
    """ERI representation implied by the density-fitting flag and the orbital kind.

    AO (pre-SCF) consumers build Fock matrices and get JK-fitted integrals;
    MO consumers are correlated methods and get RI-fitted ones.
    """

    if not df:
        return ERIKind.EXACT
    return ERIKind.JKFIT if orbitals is Orbitals.ATOMIC else ERIKind.RIFIT


_CC_FAMILY = re.compile(r"cc-pv.z", re.IGNORECASE)
_AUX_SUFFIX = {ERIKind.JKFIT: "-jkfit", ERIKind.RIFIT: "-ri"}
_AUX_FALLBACK = {ERIKind.JKFIT: "cc-pvqz-jkfit", ERIKind.RIFIT: "cc-pvqz-ri"}


def resolve_auxbasis(aux: str, basis: str, eri_kind: ERIKind) -> str:
    """Expand ``aux="auto"`` to a concrete fitting basis name.

    Correlation-consistent primaries get their matching fitting set
    (``cc-pvdz`` -> ``cc-pvdz-jkfit`` / ``cc-pvdz-ri``); anything else falls
    back to the quadruple-zeta fitting set.
    """

    aux = str(aux).strip()
    if aux.lower() != "auto" or not eri_kind.fitted:
        return aux
    basis = str(basis).strip()
    if _CC_FAMILY.search(basis):
        return basis.lower() + _AUX_SUFFIX[eri_kind]
    return _AUX_FALLBACK[eri_kind]


__all__ = [
    "ERIKind",
    "IntegralKey",
    "Orbitals",
    "STRATEGIES",
    "Strategy",
    "resolve_auxbasis",
    "select_eri_kind",
]
