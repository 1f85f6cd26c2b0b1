from __future__ import annotations

"""AO integral cache, ERI-kind selection and MO transforms."""

from .helper import IntegralHelper
from .kinds import ERIKind, IntegralKey, Orbitals, resolve_auxbasis, select_eri_kind
from .mo import MOIntegralHelper, RestrictedOrbitals, ao_to_mo
from .provider import IntegralProvider, PySCFProvider

__all__ = [
    "ERIKind",
    "IntegralHelper",
    "IntegralKey",
    "IntegralProvider",
    "MOIntegralHelper",
    "Orbitals",
    "PySCFProvider",
    "RestrictedOrbitals",
    "ao_to_mo",
    "resolve_auxbasis",
    "select_eri_kind",
]
