"""integra: AO/MO integral caching and restricted Hartree-Fock."""

from importlib.metadata import PackageNotFoundError, version as _dist_version

from integra.errors import IntegraError, InvalidOptionError, SCFConvergenceError, UnsupportedIntegralError
from integra.frontend import Molecule, run_rhf
from integra.hf import RHF, RHFSolver, SCFState
from integra.integrals import (
    ERIKind,
    IntegralHelper,
    IntegralKey,
    MOIntegralHelper,
    Orbitals,
    PySCFProvider,
    RestrictedOrbitals,
    ao_to_mo,
)
from integra.options import Options

try:
    __version__ = _dist_version("integra")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.1.0"

__all__ = [
    "__version__",
    # Configuration / errors
    "Options",
    "IntegraError",
    "InvalidOptionError",
    "SCFConvergenceError",
    "UnsupportedIntegralError",
    # Integrals
    "ERIKind",
    "IntegralHelper",
    "IntegralKey",
    "MOIntegralHelper",
    "Orbitals",
    "PySCFProvider",
    "RestrictedOrbitals",
    "ao_to_mo",
    # SCF
    "Molecule",
    "RHF",
    "RHFSolver",
    "SCFState",
    "run_rhf",
]
