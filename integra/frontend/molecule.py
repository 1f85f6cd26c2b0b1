from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from .periodic_table import atomic_number

_ANGSTROM_TO_BOHR = 1.8897259886


def _parse_atom_string(atom: str) -> list[tuple[str, np.ndarray]]:
    atoms: list[tuple[str, np.ndarray]] = []
    for frag in str(atom).replace("\n", ";").split(";"):
        frag = frag.strip()
        if not frag:
            continue
        tok = frag.split()
        if len(tok) != 4:
            raise ValueError(f"invalid atom fragment: {frag!r} (expected: 'El x y z')")
        xyz = np.asarray([float(t) for t in tok[1:]], dtype=np.float64)
        atoms.append((tok[0], xyz))
    return atoms


def _parse_atoms(atoms: Any) -> list[tuple[str, np.ndarray]]:
    if isinstance(atoms, str):
        out = _parse_atom_string(atoms)
    elif isinstance(atoms, (list, tuple)):
        out = []
        for item in atoms:
            if isinstance(item, str):
                out.extend(_parse_atom_string(item))
            elif isinstance(item, (list, tuple)) and len(item) == 2:
                out.append((str(item[0]), np.asarray(item[1], dtype=np.float64).reshape((3,))))
            else:
                raise ValueError(f"invalid atom entry: {item!r}")
    else:
        raise TypeError("atoms must be an 'El x y z; ...' string or a list of (sym, (x,y,z))")
    if not out:
        raise ValueError("no atoms parsed")
    return out


@dataclass(frozen=True, eq=False)
class Molecule:
    """Nuclear framework of a calculation: symbols, Bohr coordinates, charge and spin.

    Instances are treated as immutable and may be shared by any number of
    integral helpers. Equality and hashing are by identity.
    """

    atoms_bohr: tuple[tuple[str, np.ndarray], ...]
    charge: int = 0
    spin: int = 0  # nalpha - nbeta
    cart: bool = False

    @classmethod
    def from_atoms(
        cls,
        atoms: Any,
        *,
        unit: str = "Bohr",
        charge: int = 0,
        spin: int = 0,
        cart: bool = False,
    ) -> "Molecule":
        atoms_list = _parse_atoms(atoms)
        unit_norm = str(unit).strip().lower()
        if unit_norm in ("bohr", "a0", "au"):
            scale = 1.0
        elif unit_norm in ("angstrom", "ang", "a"):
            scale = _ANGSTROM_TO_BOHR
        else:
            raise ValueError("unit must be 'Bohr' or 'Angstrom'")
        atoms_bohr = []
        for sym, xyz in atoms_list:
            atomic_number(sym)  # reject unknown elements early
            xyz = xyz * scale
            xyz.setflags(write=False)
            atoms_bohr.append((sym, xyz))
        return cls(atoms_bohr=tuple(atoms_bohr), charge=int(charge), spin=int(spin), cart=bool(cart))

    @property
    def elements(self) -> tuple[str, ...]:
        return tuple(sym for sym, _ in self.atoms_bohr)

    @property
    def natm(self) -> int:
        return len(self.atoms_bohr)

    @property
    def coords_bohr(self) -> np.ndarray:
        """Atomic coordinates, shape (natm, 3), in Bohr."""

        return np.asarray([xyz for _sym, xyz in self.atoms_bohr], dtype=np.float64).reshape((self.natm, 3))

    @property
    def charges(self) -> np.ndarray:
        return np.asarray([atomic_number(sym) for sym in self.elements], dtype=np.float64)

    @property
    def nelectron(self) -> int:
        return int(round(float(self.charges.sum()))) - int(self.charge)

    def energy_nuc(self) -> float:
        """Nuclear repulsion energy in Hartree."""

        Z = self.charges
        R = self.coords_bohr
        e = 0.0
        for i in range(self.natm):
            for j in range(i + 1, self.natm):
                rij = float(np.linalg.norm(R[i] - R[j]))
                if rij == 0.0:
                    raise ValueError("coincident nuclei")
                e += Z[i] * Z[j] / rij
        return float(e)

    @property
    def atom(self) -> str:
        # PySCF-style atom string (Bohr).
        return "; ".join(f"{sym} {xyz[0]:.16g} {xyz[1]:.16g} {xyz[2]:.16g}" for sym, xyz in self.atoms_bohr)


__all__ = ["Molecule"]
