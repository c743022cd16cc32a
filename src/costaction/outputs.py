"""GitHub Actions workflow commands and step outputs."""

import json
import os
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional


def _to_command_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    # Whole amounts are written without a fraction: 130, not 130.0
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return json.dumps(value)


def set_output(name: str, value: Any, environ: Optional[Mapping[str, str]] = None) -> None:
    """Publish a step output.

    Writes to the $GITHUB_OUTPUT file using the delimiter form, which is safe
    for multiline values. Without $GITHUB_OUTPUT (local runs) the value is
    printed instead.
    """
    env = os.environ if environ is None else environ
    text = _to_command_value(value)
    output_file = env.get("GITHUB_OUTPUT")
    if not output_file:
        print(f"[output] {name}={text}")
        return

    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    with open(output_file, "a", encoding="utf-8") as fh:
        fh.write(f"{name}<<{delimiter}\n{text}\n{delimiter}\n")


def mask(value: Optional[str]) -> None:
    """Ask the runner to redact a secret from all later log lines."""
    if value:
        print(f"::add-mask::{value}")


def warning(message: str) -> None:
    print(f"::warning::{message}")


def error(message: str) -> None:
    print(f"::error::{message}")


@contextmanager
def group(title: str) -> Iterator[None]:
    """Fold the enclosed log lines into a collapsible group."""
    print(f"::group::{title}", flush=True)
    try:
        yield
    finally:
        print("::endgroup::", flush=True)
