"""
Utility classes and functions for Skald.

General-purpose utilities that don't belong to a specific domain.
"""

import skald.utils.home as home
from skald.utils.home import (
    EnvironHomeProvider,
    HomeProvider,
    StaticHomeProvider,
    default_home_provider,
)

__all__ = [
    "EnvironHomeProvider",
    "HomeProvider",
    "StaticHomeProvider",
    "default_home_provider",
    "home",
]
