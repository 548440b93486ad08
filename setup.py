"""Package metadata for entryrank (pure Python, src/ layout)."""

from setuptools import find_packages, setup

setup(
    name="entryrank",
    version="0.1.0",
    description="Rank a directory of text entries from pairwise comparisons",
    python_requires=">=3.11",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "click>=8.1",
        "rich>=13.0",
        "trueskill>=0.4.5",
    ],
    extras_require={
        "test": ["pytest>=8.0"],
    },
    entry_points={
        "console_scripts": [
            "entryrank=entryrank.cli:cli",
        ],
    },
)
