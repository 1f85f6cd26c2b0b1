from __future__ import annotations

"""Element symbol <-> nuclear charge lookup."""

_SYMBOLS: tuple[str | None, ...] = (None,) + tuple(
    """
    H He
    Li Be B C N O F Ne
    Na Mg Al Si P S Cl Ar
    K Ca Sc Ti V Cr Mn Fe Co Ni Cu Zn Ga Ge As Se Br Kr
    Rb Sr Y Zr Nb Mo Tc Ru Rh Pd Ag Cd In Sn Sb Te I Xe
    Cs Ba La Ce Pr Nd Pm Sm Eu Gd Tb Dy Ho Er Tm Yb Lu Hf Ta W Re Os Ir Pt Au Hg Tl Pb Bi Po At Rn
    Fr Ra Ac Th Pa U Np Pu Am Cm Bk Cf Es Fm Md No Lr Rf Db Sg Bh Hs Mt Ds Rg Cn Nh Fl Mc Lv Ts Og
    """.split()
)

_SYMBOL_TO_Z = {s.upper(): z for z, s in enumerate(_SYMBOLS) if s is not None}


def atomic_number(symbol: str) -> int:
    sym = str(symbol).strip()
    if not sym:
        raise ValueError("empty element symbol")
    # Labels such as "H1" or "O2" carry a non-semantic atom index.
    i = 0
    while i < len(sym) and sym[i].isalpha():
        i += 1
    try:
        return int(_SYMBOL_TO_Z[sym[:i].upper()])
    except KeyError as exc:
        raise ValueError(f"unknown element symbol: {symbol!r}") from exc


def element_symbol(Z: int) -> str:
    Z = int(Z)
    if Z <= 0 or Z >= len(_SYMBOLS):
        raise ValueError(f"invalid atomic number: {Z}")
    return str(_SYMBOLS[Z])


__all__ = ["atomic_number", "element_symbol"]
