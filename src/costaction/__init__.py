"""GitHub Actions orchestration for the cost-delta comment.

This module wires the pure cost-delta core into a pull request workflow:
- Downloading the prebuilt cost analyzer
- Synthesizing and analyzing the head and base commits
- Publishing step outputs and the upserted PR comment
- Optional usage reporting to the backend
"""

__version__ = "0.1.0"
