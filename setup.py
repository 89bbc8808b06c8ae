from pathlib import Path
import re

from setuptools import setup, find_packages

# Read the version without importing the package (its dependencies may be missing at build time)
version_file = (Path(__file__).parent / "automemo" / "version.py").read_text(encoding="utf-8")
__version__ = re.search(r'^__version__ = "([^"]+)"', version_file, re.M).group(1)

setup(
    name="automemo",
    version=__version__,
    description="Tiered memoization keyed by canonical argument keys",
    packages=find_packages(exclude=("tests", "tests.*")),
    install_requires=[
        "canonicaljson>=2.0.0",
        "typer>=0.9.0",
        "pydantic>=2.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "hypothesis>=6.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "automemo=automemo.main:app",
        ],
    },
    python_requires=">=3.9",
)
