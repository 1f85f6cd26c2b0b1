from __future__ import annotations

"""Exception hierarchy shared by the integral cache and the SCF drivers."""


class IntegraError(Exception):
    """Base class for all integra errors."""


class InvalidOptionError(IntegraError, ValueError):
    """A configuration value is out of range or not recognized."""


class UnsupportedIntegralError(IntegraError, KeyError):
    """An integral cache was asked for a label it cannot produce."""

    def __str__(self) -> str:
        # KeyError repr-quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else ""


class SCFConvergenceError(IntegraError, RuntimeError):
    """SCF iteration bound exhausted before both thresholds were met."""

    def __init__(self, message: str, *, niter: int, energy: float, delta_e: float, delta_d: float):
        super().__init__(message)
        self.niter = int(niter)
        self.energy = float(energy)
        self.delta_e = float(delta_e)
        self.delta_d = float(delta_d)


__all__ = [
    "IntegraError",
    "InvalidOptionError",
    "SCFConvergenceError",
    "UnsupportedIntegralError",
]
