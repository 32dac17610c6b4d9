"""
Top-level public API surface. Stable facades only.
Canonical entrypoint: import mining_monitor; use mining_monitor.ingest, mining_monitor.store, etc.
Does not import cli or api.
"""

from __future__ import annotations

from . import config, providers, store
from ._version import __version__

# Do not add exports without updating __all__.
__all__ = [
    "__version__",
    "config",
    "providers",
    "store",
]
