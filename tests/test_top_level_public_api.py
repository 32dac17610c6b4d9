"""
Tests for the top-level public API (mining_monitor/__init__.py).
Ensures __version__ and __all__ are present and that importing does not pull cli or api.
"""

from __future__ import annotations

import subprocess
import sys

EXPECTED_TOP_LEVEL_ALL = {
    "__version__",
    "config",
    "providers",
    "store",
}


def test_top_level_has_version():
    import mining_monitor as mm

    assert isinstance(mm.__version__, str)
    assert mm.__version__ == "5.1.0"


def test_top_level_has_explicit_all():
    """mining_monitor has __all__ and it matches the expected set exactly."""
    import mining_monitor as mm

    assert set(mm.__all__) == EXPECTED_TOP_LEVEL_ALL
    for name in mm.__all__:
        assert hasattr(mm, name), f"mining_monitor must export {name!r} (in __all__)"


def test_importing_mining_monitor_does_not_pull_cli_or_api():
    """Fresh interpreter: top-level import leaves cli, api and fastapi unloaded."""
    code = (
        "import sys, mining_monitor; "
        "bad = [m for m in ('mining_monitor.cli', 'mining_monitor.api', 'fastapi') if m in sys.modules]; "
        "print(','.join(bad))"
    )
    r = subprocess.run([sys.executable, "-c", code], capture_output=True, text=True, timeout=60)
    assert r.returncode == 0, r.stderr
    assert r.stdout.strip() == ""


def test_providers_facade_exports():
    from mining_monitor import providers

    for name in providers.__all__:
        assert hasattr(providers, name)
    assert "CoinSourceChain" in providers.__all__
