# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="pocketledger",
    version="0.1.0",
    description="A single-user personal ledger for income, expenses and a monthly budget",
    packages=find_namespace_packages(include=["pocket_ledger", "pocket_ledger.*"]),
    python_requires=">=3.8",
    install_requires=[
        "click>=7.0",
        "pyyaml>=5.3",
        "python-dotenv>=0.19",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "pocketledger=pocket_ledger.cli:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
