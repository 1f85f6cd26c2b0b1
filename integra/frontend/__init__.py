from __future__ import annotations

"""Front-end building blocks: molecule container and run wrappers."""

from .molecule import Molecule
from .scf import run_rhf

__all__ = ["Molecule", "run_rhf"]
