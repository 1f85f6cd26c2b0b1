from __future__ import annotations

import numpy as np
import pytest

from integra import Molecule


def test_angstrom_input_is_stored_in_bohr():
    mol = Molecule.from_atoms("H 0 0 0; H 0 0 0.74", unit="Angstrom")

    assert mol.elements == ("H", "H")
    assert mol.coords_bohr[1, 2] == pytest.approx(0.74 * 1.8897259886)
    assert mol.energy_nuc() == pytest.approx(1.0 / (0.74 * 1.8897259886))


def test_electron_count_and_labels():
    mol = Molecule.from_atoms([("O1", (0, 0, 0)), ("H", (0, 1.4, 1.1)), ("H", (0, -1.4, 1.1))], charge=1, spin=1)

    assert mol.natm == 3
    np.testing.assert_array_equal(mol.charges, [8.0, 1.0, 1.0])
    assert mol.nelectron == 9


def test_coordinates_are_read_only():
    mol = Molecule.from_atoms("He 0 0 0")

    with pytest.raises(ValueError):
        mol.atoms_bohr[0][1][0] = 1.0


@pytest.mark.parametrize("atoms", ["Xx 0 0 0", "H 0 0", ""])
def test_bad_atoms_are_rejected(atoms):
    with pytest.raises(ValueError):
        Molecule.from_atoms(atoms)


def test_periodic_table_round_trip():
    from integra.frontend.periodic_table import atomic_number, element_symbol

    assert atomic_number("fe") == 26
    assert element_symbol(26) == "Fe"
    with pytest.raises(ValueError):
        element_symbol(0)
