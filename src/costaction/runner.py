#!/usr/bin/env python3
"""Entry point of the CloudCost pull request action.

Analyzes the head commit, then the base commit (checked out in place), diffs
the two cost reports, publishes step outputs and upserts the PR comment.
"""

import argparse
import json
import logging
import os
import sys
import time
from pathlib import Path
from typing import List, Mapping, Optional

from cloudcostgh.config import ActionConfig, ConfigError, load_config
from cloudcostgh.core import Comparison, compare_report_files
from costaction import outputs
from costaction.analyzer import (
    CommandError,
    analyze_revision,
    download_analyzer,
    git_checkout,
    git_head_sha,
    temp_dir,
)
from costaction.github import (
    DEFAULT_API_URL,
    GitHubClient,
    PullRequestContext,
    load_event,
    upsert_pr_comment,
)
from costaction.usage import UsageReportError, build_usage_record, send_usage_record

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def publish_outputs(comparison: Comparison, environ: Optional[Mapping[str, str]] = None) -> None:
    """Expose the delta and totals as step outputs."""
    outputs.set_output("delta-json", json.dumps(comparison.delta.to_dict()), environ)
    outputs.set_output("delta-md", comparison.markdown, environ)
    outputs.set_output("head-total", comparison.head_total, environ)
    outputs.set_output("base-total", comparison.base_total, environ)
    outputs.set_output("delta-total", comparison.delta_total, environ)


def report_usage(config: ActionConfig, pr: PullRequestContext, comparison: Comparison,
                 duration_ms: int) -> None:
    """Send the usage record; failures are warnings, never fatal."""
    record = build_usage_record(
        repository=pr.full_name,
        commit=pr.head_sha,
        pr_number=pr.number,
        duration_ms=duration_ms,
        head_total=comparison.head_total,
        base_total=comparison.base_total,
        delta_total=comparison.delta_total,
    )
    try:
        with outputs.group("Send usage record"):
            send_usage_record(config.backend_url, config.api_key or "", record)
    except (UsageReportError, OSError) as e:
        logger.error("Failed to send usage record: %s", e)
        outputs.warning("Usage reporting failed, but continuing...")


def verify_checkout(expected_sha: str, work_dir: Path) -> None:
    """Warn when HEAD in work_dir is not expected_sha. A failing rev-parse only warns."""
    try:
        current = git_head_sha(work_dir)
    except CommandError as e:
        outputs.warning(f"Could not verify checked out SHA: {e}")
        return
    if current != expected_sha:
        outputs.warning(f"Current SHA ({current}) does not match expected base SHA ({expected_sha})")


def run(config: ActionConfig, environ: Optional[Mapping[str, str]] = None) -> Comparison:
    """Run the full action for the current pull request event.

    Raises:
        ConfigError: If credentials are missing or the event is not a pull request
        AnalyzerError: If synthesis or analysis of either commit fails
        ReportError: If a produced report cannot be read
        GitHubError: If the comment cannot be posted
    """
    env = os.environ if environ is None else environ
    config.require_credentials()
    outputs.mask(config.api_key)

    pr = PullRequestContext.from_event(load_event(env), env.get("GITHUB_REPOSITORY", ""))
    if pr is None:
        raise ConfigError("This action must be run on a pull_request event.")
    logger.info("PR #%d: base %s, head %s", pr.number, pr.base_sha, pr.head_sha)

    tmp = temp_dir(env)
    work_dir = Path(config.working_directory or os.getcwd())
    head_json = tmp / "cloudcost-head-report.json"
    base_json = tmp / "cloudcost-base-report.json"

    analyzer = download_analyzer(config.analyzer_version, tmp / "cloudcost-analyzer")
    start = time.monotonic()

    with outputs.group("Analyze head commit"):
        analyze_revision(analyzer, work_dir, config, head_json, tmp / "cloudcost-head-report.md")

    with outputs.group("Analyze base commit"):
        git_checkout(pr.base_sha, work_dir)
        try:
            verify_checkout(pr.base_sha, work_dir)
            analyze_revision(analyzer, work_dir, config, base_json,
                             tmp / "cloudcost-base-report.md", clean=True)
        finally:
            git_checkout(pr.head_sha, work_dir)

    comparison = compare_report_files(base_json, head_json, config.comment_title)
    logger.info("Monthly cost: base %.2f, head %.2f, delta %.2f",
                comparison.base_total, comparison.head_total, comparison.delta_total)
    publish_outputs(comparison, env)

    client = GitHubClient(config.github_token or "", api_url=env.get("GITHUB_API_URL", DEFAULT_API_URL))
    action, _ = upsert_pr_comment(client, pr, comparison.markdown, config.update_existing_comment)
    logger.info("PR comment %s", action)

    if config.enable_usage_reporting:
        report_usage(config, pr, comparison, int((time.monotonic() - start) * 1000))

    return comparison


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="cloudcost-action",
                                     description="Post the monthly cost delta of a PR")
    parser.add_argument("--config", "-c", help="Optional YAML configuration file")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        outputs.error(f"Invalid configuration: {e}")
        return 1

    logging.basicConfig(level=logging.DEBUG if config.verbose else logging.INFO, format=LOG_FORMAT)
    logger.info("CloudCost action starting (analyzer %s, region %s, profile %s)",
                config.analyzer_version, config.region, config.usage_profile)

    try:
        run(config)
    except Exception as e:
        logger.exception("CloudCost action failed")
        outputs.error(str(e) or type(e).__name__)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
