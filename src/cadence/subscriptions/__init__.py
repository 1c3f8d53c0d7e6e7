"""
Cadence Subscriptions - recurring billing orchestration.

This package provides the backend core of the subscription app:
- Job dispatch over interchangeable scheduler backends
- Timezone-correct hourly billing schedule evaluation
- Dunning and inventory retry state machines
"""

__version__ = "1.0.0"


def get_version() -> str:
    """Get package version."""
    return __version__


__all__ = ["__version__", "get_version"]
