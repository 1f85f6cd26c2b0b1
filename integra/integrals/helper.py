from __future__ import annotations

"""AO integral cache.

`IntegralHelper` is accessed like a dictionary::

    aoints = IntegralHelper(mol, options)
    S = aoints["S"]          # computed on first access, cached afterwards

Keys (see `integra.integrals.kinds.IntegralKey`):

    "S"      AO overlap
    "T"      AO kinetic energy
    "V"      AO electron-nuclear attraction
    "ERI"    AO electron repulsion, (μν|ρσ), 4-index
    "JKERI"  JK-fitted 3-index factors B[P,μ,ν] (helper must be JKFIT)
    "RIERI"  RI-fitted 3-index factors B[P,μ,ν] (helper must be RIFIT)

Every cached entry was produced with the current basis and ``normalize`` flag.
Changing ``normalize`` drops the whole cache.
"""

import logging
from typing import Iterator

import numpy as np

from integra.errors import UnsupportedIntegralError
from integra.frontend.molecule import Molecule
from integra.options import Options

from .kinds import STRATEGIES, IntegralKey, Orbitals, resolve_auxbasis, select_eri_kind
from .provider import IntegralProvider, PySCFProvider

logger = logging.getLogger(__name__)

_MIB = float(1 << 20)


class IntegralHelper:
    """Lazily computed, explicitly invalidated store of AO integrals.

    Parameters
    ----------
    molecule : Molecule
        Shared, read-only.
    options : Options, optional
        Source of ``basis``, ``aux``, ``df`` and ``precision`` when the
        corresponding keyword is not given. Kept as ``self.options`` so that
        consumers (`ao_to_mo`, the RHF solver) read the same configuration.
    orbitals : Orbitals
        Orbital representation of the consumer. Together with ``options.df``
        it selects the ERI kind (see `select_eri_kind`).
    basis, aux : str, optional
        Override the primary / auxiliary basis names. ``aux="auto"`` is
        resolved from the primary basis.
    normalize : bool
        Passed through to every provider call.
    provider : IntegralProvider, optional
        Defaults to `PySCFProvider`.

    Not thread-safe: the cache is mutated only by its owner.
    """

    def __init__(
        self,
        molecule: Molecule,
        options: Options | None = None,
        *,
        orbitals: Orbitals = Orbitals.ATOMIC,
        basis: str | None = None,
        aux: str | None = None,
        normalize: bool = False,
        provider: IntegralProvider | None = None,
    ):
        opts = Options() if options is None else options
        self.options = opts
        self.molecule = molecule
        self.orbitals = Orbitals(orbitals)
        self.basis = str(opts.basis if basis is None else basis)
        self.eri_kind = select_eri_kind(bool(opts.df), self.orbitals)
        self.aux = resolve_auxbasis(opts.aux if aux is None else aux, self.basis, self.eri_kind)
        self.dtype = opts.dtype
        self.provider = PySCFProvider() if provider is None else provider
        self._normalize = bool(normalize)
        self._cache: dict[IntegralKey, np.ndarray] = {}

    def __repr__(self) -> str:
        keys = ",".join(k.value for k in self._cache)
        return (
            f"IntegralHelper(basis={self.basis!r}, aux={self.aux!r}, eri_kind={self.eri_kind.name}, "
            f"orbitals={self.orbitals.name}, dtype={self.dtype.name}, normalize={self._normalize}, cached=[{keys}])"
        )

    # ---- normalization -------------------------------------------------

    @property
    def normalize(self) -> bool:
        return self._normalize

    @normalize.setter
    def normalize(self, value: bool) -> None:
        value = bool(value)
        if value == self._normalize:
            return
        self.invalidate()
        self._normalize = value

    # ---- mapping interface --------------------------------------------

    def _check_key(self, key) -> IntegralKey:
        k = IntegralKey.parse(key)
        req = STRATEGIES[k].requires
        if req is not None and req is not self.eri_kind:
            raise UnsupportedIntegralError(
                f"integral kind {k.value!r} requires ERI kind {req.name}, "
                f"but this helper is configured for {self.eri_kind.name}"
            )
        return k

    def __getitem__(self, key) -> np.ndarray:
        k = self._check_key(key)
        hit = self._cache.get(k)
        if hit is not None:
            logger.debug("AO cache hit: %s", k.value)
            return hit
        out = self._compute(k)
        self._cache[k] = out
        return out

    get = __getitem__

    def __setitem__(self, key, value) -> None:
        k = self._check_key(key)
        self._cache[k] = np.asarray(value)

    set = __setitem__

    def __contains__(self, key) -> bool:
        try:
            return IntegralKey.parse(key) in self._cache
        except UnsupportedIntegralError:
            return False

    def __len__(self) -> int:
        return len(self._cache)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def keys(self) -> list[str]:
        return [k.value for k in self._cache]

    @property
    def nbytes(self) -> int:
        return int(sum(int(a.nbytes) for a in self._cache.values()))

    # ---- invalidation --------------------------------------------------

    def invalidate(self, *keys) -> None:
        """Drop the named entries, or every entry when called without arguments."""

        if not keys:
            if self._cache:
                logger.debug("AO cache cleared (%.2f MiB released)", self.nbytes / _MIB)
            self._cache.clear()
            return
        for key in keys:
            dropped = self._cache.pop(IntegralKey.parse(key), None)
            if dropped is not None:
                logger.debug("AO cache entry %s dropped (%.2f MiB)", IntegralKey.parse(key).value, dropped.nbytes / _MIB)

    def release(self) -> None:
        """Give up every cached array; the helper stays usable and recomputes on demand."""

        self.invalidate()

    # ---- computation ---------------------------------------------------

    def _compute(self, key: IntegralKey) -> np.ndarray:
        strategy = STRATEGIES[key]
        fn = getattr(self.provider, strategy.method)
        if strategy.fitted:
            if not self.aux:
                raise UnsupportedIntegralError(f"integral kind {key.value!r} requires an auxiliary basis")
            raw = fn(self.molecule, self.basis, self.aux, self._normalize)
        else:
            raw = fn(self.molecule, self.basis, self._normalize)
        out = np.asarray(raw, dtype=self.dtype)
        logger.info(
            "computed AO %s: shape=%s dtype=%s (%.2f MiB)", key.value, tuple(out.shape), out.dtype.name, out.nbytes / _MIB
        )
        return out


__all__ = ["IntegralHelper"]
