import re

from setuptools import setup

with open("README.rst") as readme:
    long_description = readme.read()

# the package imports its dependencies, so the version is read as text
with open("rawtxutils/__init__.py") as init:
    version = re.search(r'^__version__ = "([^"]+)"', init.read(), re.M).group(1)

setup(
    name="rawtx-utils",
    version=version,
    description="Raw transaction building, signing and submission utilities",
    long_description=long_description,
    license="MIT",
    keywords="bitcoin raw transaction multisig token",
    install_requires=[
        "base58check>=1.0.2,<2.0",
        "ecdsa>=0.17",
        "sympy>=1.2,<2.0",
        "python-bitcoinrpc>=1.0,<2.0",
        "loguru>=0.6",
        "pydantic>=2.0,<3.0",
    ],
    extras_require={
        "test": ["pytest"],
    },
    packages=["rawtxutils"],
    python_requires=">=3.9",
    zip_safe=False,
)
