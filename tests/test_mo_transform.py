from __future__ import annotations

import numpy as np
import pytest

from integra import (
    IntegralHelper,
    InvalidOptionError,
    MOIntegralHelper,
    Options,
    RestrictedOrbitals,
    UnsupportedIntegralError,
    ao_to_mo,
)
from integra.integrals import Orbitals


def _orbitals(nao: int = 6, seed: int = 3) -> RestrictedOrbitals:
    rng = np.random.default_rng(seed)
    Q, _ = np.linalg.qr(rng.normal(size=(nao, nao)))
    return RestrictedOrbitals(C=Q, basis="synthetic")


def _explicit_contraction(A, C1, C2, C3, C4):
    out = np.zeros((C1.shape[1], C2.shape[1], C3.shape[1], C4.shape[1]))
    for i in range(out.shape[0]):
        for j in range(out.shape[1]):
            for a in range(out.shape[2]):
                for b in range(out.shape[3]):
                    w = np.einsum("m,n,l,s->mnls", C1[:, i], C2[:, j], C3[:, a], C4[:, b])
                    out[i, j, a, b] = np.sum(A * w)
    return out


def test_oovv_matches_explicit_four_fold_contraction(dummy_mol, provider):
    ints = IntegralHelper(dummy_mol, provider=provider)
    A = ints["ERI"].copy()
    orbs = _orbitals()
    Co, Cv = orbs.C[:, :3], orbs.C[:, 3:]

    mo = ao_to_mo(ints, orbs, "OOVV")

    ref = _explicit_contraction(A, Co, Co, Cv, Cv)
    assert mo["OOVV"].shape == (3, 3, 3, 3)
    np.testing.assert_allclose(mo["OOVV"], ref, rtol=1e-10, atol=1e-10)


def test_physicist_block_swaps_middle_axes(dummy_mol, provider):
    orbs = _orbitals()
    chem = ao_to_mo(IntegralHelper(dummy_mol, provider=provider), orbs, "OOVV", "OVOV")
    phys = ao_to_mo(IntegralHelper(dummy_mol, provider=provider), orbs, "OVOV", "OOVV", phys=True)

    # <ia|jb> = (ij|ab)
    np.testing.assert_allclose(phys["OVOV"], chem["OOVV"].transpose(0, 2, 1, 3), atol=1e-12)
    # <ij|ab> = (ia|jb)
    np.testing.assert_allclose(phys["OOVV"], chem["OVOV"].transpose(0, 2, 1, 3), atol=1e-12)
    assert phys["OOVV"].shape == (3, 3, 3, 3)


def test_mixed_blocks_have_label_shapes(dummy_mol, provider):
    ints = IntegralHelper(dummy_mol, provider=provider)

    mo = ao_to_mo(ints, _orbitals(), "OOOO", "OOOV", "OVVV", "VVVV", drop_occ=1, drop_vir=1)

    assert mo.nocc_active == 2 and mo.nvir_active == 2
    assert mo["OOOO"].shape == (2, 2, 2, 2)
    assert mo["OOOV"].shape == (2, 2, 2, 2)
    assert mo["VVVV"].shape == (2, 2, 2, 2)
    assert provider.calls["eri"] == 1


def test_frozen_core_slices_coefficients(dummy_mol, provider):
    orbs = _orbitals()
    full = ao_to_mo(IntegralHelper(dummy_mol, provider=provider), orbs, "OOVV")
    frozen = ao_to_mo(IntegralHelper(dummy_mol, provider=provider), orbs, "OOVV", drop_occ=1, drop_vir=1)

    np.testing.assert_allclose(frozen["OOVV"], full["OOVV"][1:, 1:, :2, :2], atol=1e-12)


@pytest.mark.parametrize("drop_occ", [6, 7])
def test_too_many_frozen_core_fails_before_any_work(dummy_mol, provider, drop_occ):
    ints = IntegralHelper(dummy_mol, provider=provider)

    with pytest.raises(InvalidOptionError, match=f"\\({drop_occ}\\)"):
        ao_to_mo(ints, _orbitals(), "OOVV", options=Options(drop_occ=drop_occ))
    assert provider.total_calls == 0


def test_too_many_inactive_virtuals_fails(dummy_mol, provider):
    ints = IntegralHelper(dummy_mol, provider=provider)

    with pytest.raises(InvalidOptionError, match="inactive"):
        ao_to_mo(ints, _orbitals(), "OOVV", drop_vir=6)
    assert provider.total_calls == 0


def test_unknown_block_label_fails_before_any_work(dummy_mol, provider):
    ints = IntegralHelper(dummy_mol, provider=provider)

    with pytest.raises(UnsupportedIntegralError, match="OOXV"):
        ao_to_mo(ints, _orbitals(), "OOVV", "OOXV")
    assert provider.total_calls == 0


def test_ao_cache_released_after_transform(dummy_mol, provider):
    ints = IntegralHelper(dummy_mol, provider=provider)
    ints["S"]

    mo = ao_to_mo(ints, _orbitals(), "OVOV")

    assert len(ints) == 0
    assert mo.keys() == ["OVOV"]
    with pytest.raises(UnsupportedIntegralError):
        mo["OOOO"]


def _ri_helper(mol, provider, precision="double"):
    opts = Options(df=True, precision=precision)
    return IntegralHelper(mol, opts, orbitals=Orbitals.RESTRICTED, provider=provider)


def test_fitted_blocks_boo_and_bvv_are_each_reachable(dummy_mol, provider):
    orbs = _orbitals()
    Co, Cv = orbs.C[:, :3], orbs.C[:, 3:]

    boo = ao_to_mo(_ri_helper(dummy_mol, provider), orbs, "BOO")
    bvv = ao_to_mo(_ri_helper(dummy_mol, provider), orbs, "BVV")

    np.testing.assert_allclose(boo["BOO"], np.einsum("Pmn,mi,nj->Pij", provider.B, Co, Co), atol=1e-12)
    np.testing.assert_allclose(bvv["BVV"], np.einsum("Pmn,ma,nb->Pab", provider.B, Cv, Cv), atol=1e-12)
    assert "BVV" not in boo and "BOO" not in bvv


def test_fitted_bov_reproduces_exact_ovov(dummy_mol, provider):
    orbs = _orbitals()
    exact = ao_to_mo(IntegralHelper(dummy_mol, provider=provider), orbs, "OVOV")
    fitted = ao_to_mo(_ri_helper(dummy_mol, provider), orbs, "BOV")

    Bov = fitted["BOV"]
    assert Bov.shape == (provider.B.shape[0], 3, 3)
    np.testing.assert_allclose(np.einsum("Pia,Pjb->iajb", Bov, Bov), exact["OVOV"], atol=1e-10)


def test_fitted_block_needs_ri_helper(dummy_mol, provider):
    ints = IntegralHelper(dummy_mol, Options(df=True), provider=provider)  # JKFIT

    with pytest.raises(UnsupportedIntegralError, match="RIERI"):
        ao_to_mo(ints, _orbitals(), "BOV")


def test_single_precision_casts_ao_factors(dummy_mol, provider):
    ints = _ri_helper(dummy_mol, provider)
    ints["RIERI"] = provider.B  # float64 stored in a helper working in double

    mo = MOIntegralHelper(_orbitals(), 3, dtype=np.float32, aoints=ints)

    assert mo["BOV"].dtype == np.float32
    assert mo["BOV"] is mo["bov"]
    assert provider.total_calls == 0


def test_lazy_blocks_from_attached_helper(dummy_mol, provider):
    ints = IntegralHelper(dummy_mol, provider=provider)
    mo = MOIntegralHelper(_orbitals(), 3, aoints=ints)

    assert "OOVV" not in mo
    mo["OOVV"]
    mo["OVOV"]

    assert mo.keys() == ["OOVV", "OVOV"]
    assert provider.calls["eri"] == 1
    mo.invalidate("OOVV")
    assert mo.keys() == ["OVOV"]


def test_frozen_counts_follow_cache_options(dummy_mol, provider):
    ints = IntegralHelper(dummy_mol, Options(drop_occ=1), provider=provider)

    mo = ao_to_mo(ints, _orbitals(), "OOVV")

    assert mo.drop_occ == 1
    assert mo["OOVV"].shape == (2, 2, 3, 3)


def test_explicit_options_override_cache_options(dummy_mol, provider):
    ints = IntegralHelper(dummy_mol, Options(drop_occ=1), provider=provider)

    mo = ao_to_mo(ints, _orbitals(), "OOVV", options=Options(drop_vir=1))

    assert (mo.drop_occ, mo.drop_vir) == (0, 1)
    assert mo["OOVV"].shape == (3, 3, 2, 2)
