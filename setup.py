#!/usr/bin/env python3
"""
Setup script for Jumble Clanker
"""

from setuptools import setup, find_packages

setup(
    name="jumble-clanker",
    version="1.0.0",
    description="Room bot that mirrors live drafts and types jumbled replies",
    packages=find_packages(include=["clanker", "clanker.*", "shared", "shared.*"]),
    install_requires=[
        "python-socketio[asyncio-client]>=5.11",
        "websockets==15.0",
        "click==8.1.7",
        "typer==0.12.3",
        "rich==13.9.2",
        "PyYAML>=6.0.1",
    ],
    extras_require={
        "test": [
            "pytest==8.4.2",
            "pytest-asyncio==1.2.0",
        ],
    },
    python_requires=">=3.10",
    entry_points={
        'console_scripts': [
            'clanker=clanker.cli:main',
        ],
    },
)
