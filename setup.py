"""Setup configuration for MetroTrack."""

from setuptools import setup, find_packages

with open("docs/README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="metrotrack",
    version="0.1.0",
    author="Charles Jaffe",
    description="WMATA Metrorail arrivals from live predictions and the GTFS schedule",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/metrotrack",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Framework :: AsyncIO",
    ],
    python_requires=">=3.9",
    install_requires=[
        "aiohttp>=3.8.0",
        "aiosqlite>=0.17.0",
        "pandas>=1.4.0",
        "pytz>=2021.1",
    ],
    extras_require={
        "dev": ["pytest>=6.0", "black", "flake8"],
    },
)
