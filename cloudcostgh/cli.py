from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from costdelta.render import DEFAULT_TITLE

from .core import ReportError, compare_report_files

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="cloudcost-delta",
        description="Compare two analyzer cost reports and render the PR comment",
    )
    parser.add_argument("base", help="Path to the base commit JSON report")
    parser.add_argument("head", help="Path to the head commit JSON report")
    parser.add_argument("--title", default=DEFAULT_TITLE, help="Comment heading")
    parser.add_argument("--out-md", type=Path, help="Write markdown here instead of stdout")
    parser.add_argument("--out-json", type=Path, help="Also write the delta as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format=LOG_FORMAT)

    for path in (Path(args.base), Path(args.head)):
        if not path.exists():
            print(f"File not found: {path}")
            return 2

    try:
        comparison = compare_report_files(args.base, args.head, args.title)
    except ReportError as e:
        print(str(e))
        return 3

    if args.out_json:
        args.out_json.write_text(json.dumps(comparison.delta.to_dict(), indent=2), encoding="utf-8")

    if args.out_md:
        args.out_md.write_text(comparison.markdown, encoding="utf-8")
    else:
        print(comparison.markdown)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
