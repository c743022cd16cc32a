"""Indexed view over an analyzer cost report.

Reports are indexed by stack name and, within a stack, by the resource
identity key ``(service, logical_id)``. Both indexes use plain assignment, so
when the analyzer emits a duplicate key the later entry replaces the earlier
one while keeping the first entry's position. No error is raised; a duplicate
is an analyzer contract violation that is only surfaced in debug logs.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple, Union

from costdelta.schemas import CostReport, ResourceItem

logger = logging.getLogger(__name__)

ItemKey = Tuple[str, str]


@dataclass(frozen=True)
class IndexedStack:
    """A stack with its resources keyed by identity."""
    name: str
    total: float = 0.0
    items: Dict[ItemKey, ResourceItem] = field(default_factory=dict)


@dataclass(frozen=True)
class IndexedReport:
    """Stacks keyed by name plus the resolved grand total."""
    stacks: Dict[str, IndexedStack]
    total: float


def item_key(item: ResourceItem) -> ItemKey:
    """Identity key of a resource item within its stack."""
    return (item.service, item.logical_id)


def index_report(report: Union[CostReport, Mapping[str, Any]]) -> IndexedReport:
    """Build an IndexedReport from a CostReport (or its raw JSON mapping).

    The grand total is the report's declared ``grand_total_usd`` when present,
    including an explicit 0. Otherwise it is the sum of the indexed stack
    totals, where a stack without ``total_monthly_usd`` counts as 0.
    """
    if not isinstance(report, CostReport):
        report = CostReport.model_validate(report)

    stacks: Dict[str, IndexedStack] = {}
    for stack in report.stacks:
        items: Dict[ItemKey, ResourceItem] = {}
        for item in stack.items:
            key = item_key(item)
            if key in items:
                logger.debug("Duplicate resource %s/%s in stack %s; keeping the later entry",
                             key[0], key[1], stack.name)
            items[key] = item

        if stack.name in stacks:
            logger.debug("Duplicate stack %s in report; keeping the later entry", stack.name)
        total = stack.total_monthly_usd if stack.total_monthly_usd is not None else 0.0
        stacks[stack.name] = IndexedStack(name=stack.name, total=total, items=items)

    if report.grand_total_usd is not None:
        total = report.grand_total_usd
    else:
        total = sum((s.total for s in stacks.values()), 0.0)

    return IndexedReport(stacks=stacks, total=total)
