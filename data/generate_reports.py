"""Synthetic cost report generator for development and testing.

This module generates analyzer-shaped cost reports for:
- Local runs of the cost-delta CLI without a real analyzer
- Fixtures for comment rendering and delta tests
- Demonstrating added, removed and re-priced resources
"""

import argparse
import copy
import json
import random
from pathlib import Path
from typing import Any, Dict, List, Optional

from costdelta.schemas import CostReport

# (service, logical id prefix, typical monthly range in USD)
RESOURCE_CATALOG = [
    ("AmazonEC2", "WebServer", (15.0, 250.0)),
    ("AmazonRDS", "Database", (30.0, 600.0)),
    ("AmazonS3", "AssetsBucket", (0.5, 40.0)),
    ("AWSLambda", "Handler", (0.1, 25.0)),
    ("AmazonDynamoDB", "Table", (1.0, 120.0)),
    ("AmazonSNS", "Topic", (0.1, 5.0)),
    ("AmazonVPC", "NatGateway", (32.0, 90.0)),
    ("AWSELB", "LoadBalancer", (16.0, 45.0)),
]

STACK_NAMES = ["NetworkStack", "DataStack", "ApiStack", "FrontendStack", "MonitoringStack"]


class CostReportGenerator:
    """Generate synthetic analyzer reports."""

    def __init__(self, seed: Optional[int] = None):
        """Initialize the generator with optional random seed for reproducibility."""
        self.random = random.Random(seed)

    def generate_item(self, stack_name: str, index: int) -> Dict[str, Any]:
        service, prefix, (low, high) = self.random.choice(RESOURCE_CATALOG)
        logical_id = f"{prefix}{index:02d}{self.random.randint(0, 0xFFFF):04X}"
        item = {
            "service": service,
            "logical_id": logical_id,
            "monthly_usd": round(self.random.uniform(low, high), 2),
            "cdk_path": f"{stack_name}/{prefix}{index:02d}/Resource",
        }
        if self.random.random() < 0.3:
            item["notes"] = [f"Assumes {self.random.choice(['small', 'medium', 'large'])} usage profile"]
        return item

    def generate_stack(self, name: str, item_count: int) -> Dict[str, Any]:
        items = [self.generate_item(name, i) for i in range(item_count)]
        return {
            "name": name,
            "total_monthly_usd": round(sum(i["monthly_usd"] for i in items), 2),
            "items": items,
        }

    def generate_report(self, stack_count: int = 3, items_per_stack: int = 5,
                        include_grand_total: bool = True) -> Dict[str, Any]:
        """Generate one report. Without include_grand_total the field is omitted."""
        names = STACK_NAMES[:max(0, min(stack_count, len(STACK_NAMES)))]
        stacks = [self.generate_stack(name, items_per_stack) for name in names]
        report: Dict[str, Any] = {"stacks": stacks}
        if include_grand_total:
            report["grand_total_usd"] = round(sum(s["total_monthly_usd"] for s in stacks), 2)
        return report

    def mutate(self, report: Dict[str, Any], change_rate: float = 0.3,
               add_count: int = 1, remove_count: int = 1) -> Dict[str, Any]:
        """Derive a head report from a base report.

        Re-prices a fraction of the items, removes remove_count items and adds
        add_count new ones (spread over random stacks). Totals are recomputed.
        """
        head = copy.deepcopy(report)
        stacks: List[Dict[str, Any]] = head.get("stacks", [])
        if not stacks:
            return head

        for stack in stacks:
            for item in stack["items"]:
                if self.random.random() < change_rate:
                    factor = self.random.uniform(0.5, 2.0)
                    item["monthly_usd"] = round(item["monthly_usd"] * factor, 2)

        for _ in range(remove_count):
            candidates = [s for s in stacks if s["items"]]
            if not candidates:
                break
            stack = self.random.choice(candidates)
            stack["items"].pop(self.random.randrange(len(stack["items"])))

        for n in range(add_count):
            stack = self.random.choice(stacks)
            stack["items"].append(self.generate_item(stack["name"], 90 + n))

        for stack in stacks:
            stack["total_monthly_usd"] = round(sum(i["monthly_usd"] for i in stack["items"]), 2)
        if "grand_total_usd" in head:
            head["grand_total_usd"] = round(sum(s["total_monthly_usd"] for s in stacks), 2)
        return head

    def save_report(self, report: Dict[str, Any], filepath: Path) -> None:
        """Validate and save a report as JSON."""
        CostReport.model_validate(report)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, 'w') as f:
            json.dump(report, f, indent=2)

        print(f"✅ Saved report with {len(report.get('stacks', []))} stacks to {filepath}")


def main():
    """Command-line interface for the report generator."""
    parser = argparse.ArgumentParser(description="Generate synthetic base/head cost reports")
    parser.add_argument("--stacks", type=int, default=3, help="Number of stacks")
    parser.add_argument("--items", type=int, default=5, help="Items per stack")
    parser.add_argument("--change-rate", type=float, default=0.3,
                        help="Fraction of items re-priced in the head report (0.0-1.0)")
    parser.add_argument("--output-dir", type=Path, default=Path("data"), help="Output directory")
    parser.add_argument("--no-grand-total", action="store_true",
                        help="Omit grand_total_usd so consumers must sum stack totals")
    parser.add_argument("--seed", type=int, help="Random seed for reproducibility")

    args = parser.parse_args()

    if not 0.0 <= args.change_rate <= 1.0:
        print("❌ Error: change-rate must be between 0.0 and 1.0")
        return 1

    generator = CostReportGenerator(seed=args.seed)
    base = generator.generate_report(args.stacks, args.items, include_grand_total=not args.no_grand_total)
    head = generator.mutate(base, change_rate=args.change_rate)

    generator.save_report(base, args.output_dir / "base_report.json")
    generator.save_report(head, args.output_dir / "head_report.json")
    return 0


if __name__ == "__main__":
    exit(main())
