#!/usr/bin/env python
"""Setup script for auditchain - Tamper-evident audit ledger."""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

# Core dependencies
core_deps = [
    "pydantic>=2.0.0",
    "pydantic-settings>=2.0.0",
    "python-dateutil>=2.8.0",
    "sqlalchemy>=2.0.0",
]

# Optional dependencies for different features
extras_require = {
    # Database drivers
    "postgresql": ["psycopg2-binary>=2.9.0"],

    # Development dependencies
    "dev": [
        "pytest>=7.4.0",
        "pytest-cov>=4.1.0",
        "pytest-asyncio>=0.21.0",
        "pytest-mock>=3.11.0",
        "black>=23.7.0",
        "isort>=5.12.0",
        "flake8>=6.1.0",
        "mypy>=1.5.0",
    ],

    # Testing dependencies
    "test": [
        "pytest>=7.4.0",
        "pytest-cov>=4.1.0",
        "pytest-asyncio>=0.21.0",
        "pytest-mock>=3.11.0",
    ],
}

extras_require["all"] = list(set(extras_require["postgresql"]))

setup(
    name="auditchain",
    version="1.0.0",
    author="auditchain contributors",
    license="MIT",
    description="Tamper-evident, hash-chained audit ledger for multi-tenant applications",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: System :: Logging",
        "Topic :: Security :: Cryptography",
        "Topic :: Database",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
        "Typing :: Typed",
    ],
    keywords="audit ledger hash-chain tamper-evident compliance",
    python_requires=">=3.9",
    install_requires=core_deps,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "auditchain=auditchain.cli:main",
        ],
    },
    include_package_data=True,
    package_data={
        "auditchain": ["py.typed"],
    },
    zip_safe=False,
)
