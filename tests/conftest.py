import json
import sys
from pathlib import Path

import pytest

# Add the repository root to sys.path so tests can import cloudcostgh directly.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
# Also add src/ to the path so tests can import costdelta and costaction as top-level packages.
SRC = str(ROOT / "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)


@pytest.fixture
def base_report_data():
    return {
        "grand_total_usd": 130.0,
        "stacks": [
            {
                "name": "ApiStack",
                "total_monthly_usd": 100.0,
                "items": [
                    {"service": "AmazonEC2", "logical_id": "WebServer", "monthly_usd": 80.0,
                     "cdk_path": "ApiStack/WebServer/Resource"},
                    {"service": "AWSLambda", "logical_id": "Handler", "monthly_usd": 20.0},
                ],
            },
            {
                "name": "DataStack",
                "total_monthly_usd": 30.0,
                "items": [
                    {"service": "AmazonS3", "logical_id": "Assets", "monthly_usd": 5.0},
                    {"service": "AmazonDynamoDB", "logical_id": "Table", "monthly_usd": 25.0,
                     "notes": ["On-demand capacity"]},
                ],
            },
        ],
    }


@pytest.fixture
def head_report_data():
    return {
        "grand_total_usd": 172.5,
        "stacks": [
            {
                "name": "ApiStack",
                "total_monthly_usd": 140.0,
                "items": [
                    {"service": "AmazonEC2", "logical_id": "WebServer", "monthly_usd": 120.0},
                    {"service": "AWSLambda", "logical_id": "Handler", "monthly_usd": 20.0},
                ],
            },
            {
                "name": "DataStack",
                "total_monthly_usd": 32.5,
                "items": [
                    {"service": "AmazonS3", "logical_id": "Assets", "monthly_usd": 7.5},
                    {"service": "AmazonDynamoDB", "logical_id": "Table", "monthly_usd": 25.0},
                ],
            },
        ],
    }


@pytest.fixture
def report_files(tmp_path, base_report_data, head_report_data):
    base = tmp_path / "base.json"
    head = tmp_path / "head.json"
    base.write_text(json.dumps(base_report_data))
    head.write_text(json.dumps(head_report_data))
    return base, head
