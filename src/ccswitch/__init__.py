"""Multi-account switcher for Claude Code."""

from importlib.metadata import version

__version__ = version("ccswitch")

from ccswitch.switcher import AccountSwitcher

__all__ = ["AccountSwitcher", "__version__"]
