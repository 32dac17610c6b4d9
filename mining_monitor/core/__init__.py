"""
Stable facade: shared errors only. Do not add exports without updating __all__.
"""

from __future__ import annotations

from .errors import ConfigError, MiningMonitorError

# Do not add exports without updating __all__.
__all__ = ["ConfigError", "MiningMonitorError"]
