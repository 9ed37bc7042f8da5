"""
Setup script for csvgrid - Streaming CSV export with file splitting
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README file
readme_path = Path(__file__).parent / "README.md"
if readme_path.exists():
    with open(readme_path, "r", encoding="utf-8") as f:
        long_description = f.read()
else:
    long_description = "csvgrid - Streaming CSV export with configurable columns and file splitting"

# Read version from package
version = "1.0.0"
try:
    with open(Path(__file__).parent / "csvgrid" / "__version__.py", "r") as f:
        exec(f.read())
        version = __version__
except FileNotFoundError:
    pass

# Core requirements (always installed)
core_requirements = [
    "numpy>=1.21.0",
    "click>=8.0.0",
    "PyYAML>=6.0",
    "python-dotenv>=1.0.0",
    "sqlalchemy>=2.0.0",
]

# Optional feature requirements
extras_require = {
    # Development tools
    "dev": [
        "pytest>=7.0.0",
        "pytest-cov>=4.0.0",
        "black>=22.0.0",
        "flake8>=5.0.0",
        "mypy>=1.0.0",
        "isort>=5.10.0",
    ],
    "test": [
        "pytest>=7.0.0",
        "pytest-cov>=4.0.0",
    ],
}

setup(
    name="csvgrid",
    version=version,
    author="csvgrid Development Team",
    description="Streaming CSV export with configurable columns, formatting and file splitting",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Database",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
        "Environment :: Console",
    ],
    python_requires=">=3.8",
    install_requires=core_requirements,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "csvgrid=csvgrid.cli.main:main",
        ],
    },
    keywords=[
        "csv",
        "export",
        "data export",
        "batch",
        "sqlalchemy",
    ],
    zip_safe=False,
)
