"""Cost analyzer download and per-commit analysis.

The analyzer is an opaque prebuilt binary. For each commit the working tree
is synthesized with ``npx cdk synth`` and the analyzer prices ``cdk.out``,
writing a JSON and a markdown report.
"""

import logging
import os
import shutil
import stat
import subprocess
import tempfile
import time
from pathlib import Path
from typing import List, Mapping, Optional
from urllib.request import urlopen

from cloudcostgh.config import ActionConfig

logger = logging.getLogger(__name__)

ANALYZER_RELEASE_URL = (
    "https://github.com/odrori1997/cloudcost-analyzer/releases/download/{version}/analyzer"
)
CDK_OUT = "cdk.out"


class AnalyzerError(RuntimeError):
    """Raised when preparing or running an analysis step fails."""


class CommandError(AnalyzerError):
    """Raised when an external command exits non-zero."""

    def __init__(self, cmd: List[str], returncode: int):
        super().__init__(f"Command failed: {cmd[0]} (exit code {returncode})")
        self.cmd = cmd
        self.returncode = returncode


def redact(cmd: List[str]) -> List[str]:
    """Copy of cmd with the value following --api-key hidden."""
    out = list(cmd)
    for i, arg in enumerate(out[:-1]):
        if arg == "--api-key":
            out[i + 1] = "***"
    return out


def run_command(cmd: List[str], cwd: Optional[Path] = None,
                capture: bool = False) -> subprocess.CompletedProcess:
    """Run a command, streaming its output to the job log unless captured.

    Args:
        cmd: Command to run as list of strings
        cwd: Working directory
        capture: Capture stdout/stderr as text instead of inheriting them

    Returns:
        CompletedProcess result

    Raises:
        CommandError: If the command exits non-zero
    """
    logger.info("Running: %s", " ".join(redact(cmd)))
    start = time.monotonic()
    result = subprocess.run(cmd, cwd=cwd, capture_output=capture, text=True, check=False)
    elapsed_ms = int((time.monotonic() - start) * 1000)

    if result.returncode != 0:
        logger.error("Command failed: %s (exit code %s, %d ms)", cmd[0], result.returncode, elapsed_ms)
        if capture and result.stderr:
            logger.error("stderr: %s", result.stderr.strip()[:500])
        raise CommandError(cmd, result.returncode)

    logger.info("Command succeeded: %s (took %d ms)", cmd[0], elapsed_ms)
    return result


def download_analyzer(version: str, dest_dir: Path, timeout: float = 120.0) -> Path:
    """Download the analyzer release binary and make it executable."""
    dest_dir.mkdir(parents=True, exist_ok=True)
    analyzer_path = dest_dir / "analyzer"
    if analyzer_path.exists():
        analyzer_path.unlink()

    url = ANALYZER_RELEASE_URL.format(version=version)
    logger.info("Downloading analyzer %s from %s", version, url)
    with urlopen(url, timeout=timeout) as resp, open(analyzer_path, "wb") as fh:
        shutil.copyfileobj(resp, fh)

    if not analyzer_path.exists():
        raise AnalyzerError(f"Analyzer file not found after download: {analyzer_path}")
    size = analyzer_path.stat().st_size
    if size == 0:
        raise AnalyzerError(f"Downloaded analyzer file is empty: {analyzer_path}")

    mode = analyzer_path.stat().st_mode
    analyzer_path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.info("Analyzer ready at %s (%d bytes)", analyzer_path, size)
    return analyzer_path


def cdk_synth(work_dir: Path) -> Path:
    """Synthesize the CDK app in work_dir and return the cdk.out path."""
    run_command(["npx", "cdk", "synth", "--quiet"], cwd=work_dir)
    cdk_out = work_dir / CDK_OUT
    if not cdk_out.is_dir():
        raise AnalyzerError(f"CDK synth did not create {CDK_OUT} in {work_dir}")
    return cdk_out


def run_analyzer(analyzer_path: Path, work_dir: Path, config: ActionConfig,
                 out_json: Path, out_md: Path) -> Path:
    """Price the synthesized templates and return the JSON report path."""
    if not analyzer_path.exists():
        raise AnalyzerError(f"Analyzer binary not found at: {analyzer_path}")

    cmd = [
        str(analyzer_path),
        "--cdk-out", f"./{CDK_OUT}",
        "--region", config.region,
        "--usage-profile", config.usage_profile,
        "--out-json", str(out_json),
        "--out-md", str(out_md),
        "--api-key", config.api_key or "",
        "--backend-url", config.backend_url,
    ]
    run_command(cmd, cwd=work_dir)

    if not out_json.exists():
        raise AnalyzerError(f"Report file not found: {out_json}")
    if out_json.stat().st_size == 0:
        raise AnalyzerError(f"Report file is empty: {out_json}")
    return out_json


def analyze_revision(analyzer_path: Path, work_dir: Path, config: ActionConfig,
                     out_json: Path, out_md: Path, clean: bool = False) -> Path:
    """Synthesize and analyze whatever is currently checked out in work_dir.

    With clean=True a stale cdk.out from a previous synth is removed first.
    """
    cdk_out = work_dir / CDK_OUT
    if clean and cdk_out.exists():
        shutil.rmtree(cdk_out, ignore_errors=True)
    cdk_synth(work_dir)
    return run_analyzer(analyzer_path, work_dir, config, out_json, out_md)


def git_checkout(sha: str, work_dir: Path) -> None:
    run_command(["git", "checkout", sha], cwd=work_dir)


def git_head_sha(work_dir: Path) -> str:
    return run_command(["git", "rev-parse", "HEAD"], cwd=work_dir, capture=True).stdout.strip()


def temp_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Runner scratch directory ($RUNNER_TEMP, else the system temp dir)."""
    env = os.environ if environ is None else environ
    return Path(env.get("RUNNER_TEMP") or tempfile.gettempdir())
