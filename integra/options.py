from __future__ import annotations

"""Run configuration.

A single frozen `Options` instance is built once per calculation and passed by
reference into `IntegralHelper`, `MOIntegralHelper` and the RHF solver.
Defaults may be overridden from the environment with ``INTEGRA_<FIELD>``
variables (see `Options.from_env`).
"""

from dataclasses import asdict, dataclass, fields, replace
import os
from typing import Any, Mapping

import numpy as np

from .errors import InvalidOptionError

_PRECISIONS = {"single": np.float32, "double": np.float64}
_GUESSES = ("core", "gwh")
_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class Options:
    basis: str = "sto-3g"
    aux: str = "auto"
    df: bool = False
    precision: str = "double"
    drop_occ: int = 0
    drop_vir: int = 0
    scf_alg: int = 1
    scf_max_rms: float = 1e-9
    scf_e_conv: float = 1e-10
    scf_max_iter: int = 50
    oda: bool = True
    oda_cutoff: float = 1e-1
    oda_shutoff: int = 20
    scf_guess: str = "gwh"
    diis: bool = True
    ndiis: int = 8

    def __post_init__(self) -> None:
        for f in fields(self):
            object.__setattr__(self, f.name, _check_type(f.name, f.type, getattr(self, f.name)))

        precision = str(self.precision).strip().lower()
        if precision not in _PRECISIONS:
            raise InvalidOptionError(f"precision can only be 'single' or 'double'. Got {self.precision!r}")
        object.__setattr__(self, "precision", precision)

        guess = str(self.scf_guess).strip().lower()
        if guess not in _GUESSES:
            raise InvalidOptionError(f"scf_guess must be one of {_GUESSES}. Got {self.scf_guess!r}")
        object.__setattr__(self, "scf_guess", guess)

        for name in ("drop_occ", "drop_vir", "scf_max_iter", "oda_shutoff"):
            val = getattr(self, name)
            if int(val) < 0:
                raise InvalidOptionError(f"{name} must be >= 0, got {val}")
        if int(self.ndiis) < 1:
            raise InvalidOptionError(f"ndiis must be >= 1, got {self.ndiis}")
        for name in ("scf_max_rms", "scf_e_conv", "oda_cutoff"):
            val = getattr(self, name)
            if not float(val) > 0.0:
                raise InvalidOptionError(f"{name} must be > 0, got {val}")

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(_PRECISIONS[self.precision])

    def replace(self, **changes: Any) -> "Options":
        unknown = sorted(set(changes) - _FIELD_NAMES)
        if unknown:
            raise InvalidOptionError(f"unknown option(s): {', '.join(unknown)}")
        return replace(self, **changes)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, mapping: Mapping[str, Any]) -> "Options":
        unknown = sorted(set(mapping) - _FIELD_NAMES)
        if unknown:
            raise InvalidOptionError(f"unknown option(s): {', '.join(unknown)}")
        return cls(**dict(mapping))

    @classmethod
    def from_env(cls, prefix: str = "INTEGRA_", environ: Mapping[str, str] | None = None) -> "Options":
        """Build options from defaults overridden by ``<prefix><FIELD>`` variables."""

        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            raw = env.get(prefix + f.name.upper())
            if raw is None:
                continue
            kwargs[f.name] = _coerce(f.name, f.type, raw)
        return cls(**kwargs)


def _coerce(name: str, typ: Any, raw: str) -> Any:
    typ = typ if isinstance(typ, str) else getattr(typ, "__name__", str(typ))
    text = str(raw).strip()
    if typ == "bool":
        low = text.lower()
        if low in _TRUE:
            return True
        if low in _FALSE:
            return False
        raise InvalidOptionError(f"{name} must be a boolean, got {raw!r}")
    try:
        if typ == "int":
            return int(text)
        if typ == "float":
            return float(text)
    except ValueError as e:
        raise InvalidOptionError(f"{name} must be {typ}, got {raw!r}") from e
    return text


def _check_type(name: str, typ: Any, val: Any) -> Any:
    typ = typ if isinstance(typ, str) else getattr(typ, "__name__", str(typ))
    if isinstance(val, str) and typ != "str":
        return _coerce(name, typ, val)
    is_bool = isinstance(val, (bool, np.bool_))
    if typ == "bool" and is_bool:
        return bool(val)
    if typ == "int" and isinstance(val, (int, np.integer)) and not is_bool:
        return int(val)
    if typ == "float" and isinstance(val, (int, float, np.integer, np.floating)) and not is_bool:
        return float(val)
    if typ == "str" and isinstance(val, str):
        return val
    raise InvalidOptionError(f"{name} must be {typ}, got {val!r}")


_FIELD_NAMES = frozenset(f.name for f in fields(Options))


__all__ = ["Options"]
