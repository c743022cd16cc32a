"""CloudCost pull request cost-delta action."""

__version__ = "0.1.0"
