"""Cost delta engine.

Reconciles a base-commit report with a head-commit report and produces the
structured difference shown on the pull request:

1. Total delta, always emitted (even when zero)
2. One StackDelta per stack present on either side, skipping stacks that
   neither changed total nor contain a changed resource
3. One ItemDelta per resource whose cost differs (exact inequality)

A stack or resource missing on one side counts as cost 0 on that side.
Stacks and items are ordered by descending absolute diff; equal magnitudes
keep union order (base keys first, then head-only keys).
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, TypeVar

from costdelta.report import IndexedReport, IndexedStack, ItemKey

logger = logging.getLogger(__name__)

K = TypeVar("K")

_EMPTY_STACK = IndexedStack(name="")


@dataclass(frozen=True)
class TotalDelta:
    """Grand totals of both reports and their difference."""
    base: float
    head: float
    diff: float


@dataclass(frozen=True)
class ItemDelta:
    """Cost change of a single resource."""
    service: str
    logical_id: str
    cdk_path: Optional[str]
    base: float
    head: float
    diff: float
    notes: Tuple[str, ...]
    stack_name: str

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "service": self.service,
            "logicalId": self.logical_id,
        }
        if self.cdk_path is not None:
            data["cdkPath"] = self.cdk_path
        data.update({
            "base": self.base,
            "head": self.head,
            "diff": self.diff,
            "notes": list(self.notes),
            "stackName": self.stack_name,
        })
        return data


@dataclass(frozen=True)
class StackDelta:
    """Cost change of a stack and its changed resources."""
    stack_name: str
    base: float
    head: float
    diff: float
    items: Tuple[ItemDelta, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stackName": self.stack_name,
            "base": self.base,
            "head": self.head,
            "diff": self.diff,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass(frozen=True)
class Delta:
    """Full difference between a base and a head report."""
    total: TotalDelta
    stacks: Tuple[StackDelta, ...]

    def iter_items(self) -> Iterator[ItemDelta]:
        """All item deltas, stack by stack, in stored order."""
        for stack in self.stacks:
            yield from stack.items

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready form published as the ``delta-json`` output."""
        return {
            "total": {
                "base": self.total.base,
                "head": self.total.head,
                "diff": self.total.diff,
            },
            "stacks": [stack.to_dict() for stack in self.stacks],
        }


def _union(*keysets: Iterable[K]) -> List[K]:
    merged: Dict[K, None] = {}
    for keys in keysets:
        for key in keys:
            merged.setdefault(key, None)
    return list(merged)


def _by_magnitude(delta) -> float:
    return abs(delta.diff)


def _item_deltas(stack_name: str, base: IndexedStack, head: IndexedStack) -> List[ItemDelta]:
    items = []
    for key in _union(base.items, head.items):
        base_item = base.items.get(key)
        head_item = head.items.get(key)
        base_val = base_item.monthly_usd if base_item is not None else 0.0
        head_val = head_item.monthly_usd if head_item is not None else 0.0
        diff = head_val - base_val
        if diff == 0:
            continue

        cdk_path = next(
            (item.cdk_path for item in (head_item, base_item) if item is not None and item.cdk_path),
            None,
        )
        # An empty notes list on head still wins over base notes
        if head_item is not None and head_item.notes is not None:
            notes = head_item.notes
        elif base_item is not None and base_item.notes is not None:
            notes = base_item.notes
        else:
            notes = []

        service, logical_id = key
        items.append(ItemDelta(
            service=service,
            logical_id=logical_id,
            cdk_path=cdk_path,
            base=base_val,
            head=head_val,
            diff=diff,
            notes=tuple(notes),
            stack_name=stack_name,
        ))

    return sorted(items, key=_by_magnitude, reverse=True)


def _stack_delta(name: str, base: Optional[IndexedStack], head: Optional[IndexedStack]) -> StackDelta:
    base = base or _EMPTY_STACK
    head = head or _EMPTY_STACK
    return StackDelta(
        stack_name=name,
        base=base.total,
        head=head.total,
        diff=head.total - base.total,
        items=tuple(_item_deltas(name, base, head)),
    )


def compute_delta(base: IndexedReport, head: IndexedReport) -> Delta:
    """Compute the cost delta between two indexed reports.

    Unlike a plain union of stack names, a stack whose total is unchanged and
    which has no changed resource is left out, so identical reports produce
    no stack deltas at all.

    Args:
        base: Indexed report of the PR base commit
        head: Indexed report of the PR head commit

    Returns:
        Delta with the total difference and the ordered stack deltas
    """
    stacks = []
    for name in _union(base.stacks, head.stacks):
        stack = _stack_delta(name, base.stacks.get(name), head.stacks.get(name))
        if stack.diff == 0 and not stack.items:
            logger.debug("Stack %s unchanged; omitted from delta", name)
            continue
        stacks.append(stack)

    total = TotalDelta(base=base.total, head=head.total, diff=head.total - base.total)
    logger.debug("Computed delta: %d changed stacks, total diff %.2f", len(stacks), total.diff)
    return Delta(total=total, stacks=tuple(sorted(stacks, key=_by_magnitude, reverse=True)))
