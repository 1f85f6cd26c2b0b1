from __future__ import annotations

import os

from setuptools import find_packages, setup


def _read_version() -> str:
    raw = os.environ.get("INTEGRA_VERSION", "").strip()
    return raw or "0.1.0"


setup(
    name="integra",
    version=_read_version(),
    description="AO/MO integral caching with density fitting, and a restricted Hartree-Fock solver",
    packages=find_packages(include=["integra", "integra.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.22",
        "scipy>=1.8",
        "pyscf>=2.3",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
)
