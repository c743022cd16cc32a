"""Usage-record reporting to the CloudCost backend."""

import json
import logging
from typing import Any, Dict
from urllib.error import HTTPError
from urllib.request import Request, urlopen

logger = logging.getLogger(__name__)


class UsageReportError(RuntimeError):
    """Raised when the backend rejects a usage record."""


def usage_url(backend_url: str) -> str:
    return f"{backend_url.rstrip('/')}/api/v1/usage"


def build_usage_record(repository: str, commit: str, pr_number: int, duration_ms: int,
                       head_total: float, base_total: float, delta_total: float) -> Dict[str, Any]:
    return {
        "repo": repository,
        "commit": commit,
        "pr": pr_number,
        "duration_ms": duration_ms,
        "head_total": head_total,
        "base_total": base_total,
        "delta_total": delta_total,
    }


def send_usage_record(backend_url: str, api_key: str, record: Dict[str, Any],
                      timeout: float = 30.0) -> int:
    """POST a usage record and return the HTTP status.

    Raises:
        UsageReportError: If the backend answers with a non-2xx status
    """
    url = usage_url(backend_url)
    req = Request(url, data=json.dumps(record).encode("utf-8"), method="POST", headers={
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key}",
    })
    logger.info("Sending usage record to %s", url)
    try:
        with urlopen(req, timeout=timeout) as resp:
            status = resp.status
            body = resp.read().decode("utf-8", errors="ignore")
    except HTTPError as e:
        detail = e.read().decode("utf-8", errors="ignore")
        raise UsageReportError(f"Usage API returned {e.code}: {detail}") from e

    logger.debug("Usage API responded %s: %s", status, body[:1000])
    return status
