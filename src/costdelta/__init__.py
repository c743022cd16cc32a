"""Cost-delta computation for infrastructure-as-code pull requests.

This package turns two analyzer cost reports (PR base and head commits) into
a structured difference and a PR comment:
- Report parsing and indexing by stack and resource identity
- Reconciliation of stacks and resources across both reports
- Deterministic markdown rendering with an upsert marker

Everything here is pure: no I/O, no network, no subprocesses.
"""

__version__ = "0.1.0"
