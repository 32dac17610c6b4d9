"""
Shared exception types for mining_monitor.
Stable surface; extend only.
"""

from __future__ import annotations


class MiningMonitorError(Exception):
    """Base exception for mining_monitor; catch this for any package-raised error."""

    pass


class ConfigError(MiningMonitorError):
    """Invalid configuration detected while wiring adapters or the cycle."""

    pass


__all__ = ["ConfigError", "MiningMonitorError"]
