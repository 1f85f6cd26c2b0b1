"""Einsum with contraction-path caching.

``numpy.einsum(..., optimize=True)`` searches for the optimal contraction order
on every call. The MO transforms issue the same subscripts with identically
shaped operands each time a block of a given label is requested, so the path is
computed once per ``(subscripts, shapes, dtypes)`` and reused afterwards.
"""

from __future__ import annotations

import numpy as np

_path_cache: dict[tuple, list] = {}


def contraction_path(subscripts: str, *operands) -> list:
    """Return (and memoize) the optimal einsum path for these operand shapes."""

    key = (subscripts, tuple((tuple(op.shape), np.dtype(op.dtype).str) for op in operands))
    path = _path_cache.get(key)
    if path is None:
        path, _info = np.einsum_path(subscripts, *operands, optimize="optimal")
        _path_cache[key] = path
    return path


def cached_einsum(subscripts: str, *operands, **kwargs):
    """``np.einsum`` using a cached contraction path.

    Any ``optimize`` keyword passed by the caller is ignored.
    """

    operands = tuple(np.asarray(op) for op in operands)
    kwargs.pop("optimize", None)
    path = contraction_path(subscripts, *operands)
    return np.einsum(subscripts, *operands, optimize=path, **kwargs)


def clear_cache() -> None:
    """Clear the cached contraction paths."""
    _path_cache.clear()


__all__ = ["cached_einsum", "clear_cache", "contraction_path"]
