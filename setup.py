"""Setup script for lens-cli."""
from setuptools import setup, find_packages

dependencies = [
    "rich>=13.0.0",
    "python-dotenv",
    "pydantic>=2.0.0",
    "docker>=7.0.0",
]

test_dependencies = [
    "pytest>=8.0.0",
    "pytest-asyncio>=0.23.0",
]

setup(
    name="lens-cli",
    version="0.1.0",
    description="Lens CLI - preflight checks and quality gate for the review loop",
    license="MIT",
    python_requires=">=3.11,<4.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=dependencies,
    extras_require={"test": test_dependencies},
    entry_points={
        "console_scripts": [
            "lens=lens_cli:cli_main",
        ],
    },
)
