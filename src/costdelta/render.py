"""Markdown rendering of a cost delta for the pull request comment.

The output always starts with COMMENT_MARKER, which is how an earlier comment
is found and replaced on later runs. Rendering is a pure function of the delta
and the title, so re-running on the same reports yields a byte-identical body.
"""

from decimal import ROUND_HALF_UP, Context, Decimal
from typing import List

from costdelta.delta import Delta, ItemDelta

COMMENT_MARKER = "<!-- cloudcostgh-comment -->"
DEFAULT_TITLE = "Cloud Cost Impact"
TOP_ITEMS_LIMIT = 10

_CENTS = Decimal("0.01")
# Wide enough for every finite float (up to ~1.8e308) plus two decimals
_QUANTIZE_CONTEXT = Context(prec=400)


def format_usd(value: float) -> str:
    """Format a dollar amount with two decimals, e.g. ``$-12.30``.

    Rounds half away from zero on the exact value of the float. Negative zero
    renders as ``$0.00``.
    """
    if value == 0:
        return "$0.00"
    amount = Decimal(value).quantize(_CENTS, rounding=ROUND_HALF_UP, context=_QUANTIZE_CONTEXT)
    return f"${amount}"


def top_items(delta: Delta, limit: int = TOP_ITEMS_LIMIT) -> List[ItemDelta]:
    """Largest item deltas across all stacks.

    This is a separate full sort over the flattened items, not a merge of the
    per-stack orderings. Ties keep stack order, then item order.
    """
    ranked = sorted(delta.iter_items(), key=lambda item: abs(item.diff), reverse=True)
    return ranked[:limit]


def render_markdown(delta: Delta, title: str = DEFAULT_TITLE) -> str:
    """Render the PR comment body for a delta.

    Args:
        delta: Computed cost delta
        title: Heading text, inserted verbatim

    Returns:
        Markdown document beginning with COMMENT_MARKER
    """
    lines = [
        COMMENT_MARKER,
        f"## {title}",
        "",
        "**Total monthly cost**",
        "",
        "|        | Base | Head | Δ |",
        "|--------|------|------|---|",
        f"| Amount | {format_usd(delta.total.base)} | {format_usd(delta.total.head)} "
        f"| {format_usd(delta.total.diff)} |",
        "",
    ]

    items = top_items(delta)
    if items:
        lines.extend([
            "**Top resource deltas**",
            "",
            "| Stack | Service | Logical ID | Base | Head | Δ |",
            "|-------|---------|-----------|------|------|---|",
        ])
        for item in items:
            lines.append(
                f"| {item.stack_name} | {item.service} | {item.logical_id} "
                f"| {format_usd(item.base)} | {format_usd(item.head)} | {format_usd(item.diff)} |"
            )
        lines.append("")

    return "\n".join(lines)
