#!/usr/bin/env python3
"""
Setup configuration for spot-analyzer
Tempo and time signature analysis of Spotify playlists from the command line
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "requests>=2.31.0",
    "click>=8.1.7",
    "rich-click>=1.7.0",
    "rich>=13.7.0",
    "pyyaml>=6.0.1",
    "tqdm>=4.66.1",
    "python-dotenv>=1.0.0",
]

setup(
    name="spot-analyzer",
    version="0.1.0",
    author="spot-analyzer",
    description="Analyze the tempo and time signature of Spotify playlists",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["spot_analyzer", "spot_analyzer.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio :: Analysis",
    ],
    python_requires=">=3.10",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
        ],
    },
    entry_points={
        "console_scripts": [
            "spot-analyze=spot_analyzer.cli:main",
        ],
    },
    keywords="spotify tempo bpm time-signature playlist cli",
)
