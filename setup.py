#!/usr/bin/env python3
"""
CLRebalancer - Setup Script
Concentrated liquidity rebalance bot
"""
from setuptools import setup

setup(
    name="clrebalancer",
    version="0.1.0",
    description="Keeps a concentrated liquidity position centered on the pool price",
    python_requires=">=3.8",
    py_modules=[
        "alert_manager",
        "automated_rebalancer",
        "balance_consolidator",
        "bot",
        "client_factory",
        "config",
        "exceptions",
        "ledger_client",
        "main",
        "position_monitor",
        "simulator",
        "snapshots",
        "strategy",
        "utils",
    ],
    packages=["models"],
    install_requires=[
        "python-dotenv>=1.0.0",
        "requests>=2.31.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "clrebalancer=main:main",
        ],
    },
)
