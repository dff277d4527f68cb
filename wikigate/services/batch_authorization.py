"""Batch authorization for list views.

Tag pages, search results and the file browser render dozens to hundreds of
resources at once. Checking them one by one from the call site used to mean
one round-trip per item; here the caller loads every snapshot up front and
the aggregator decides them all in a single pass.

Guarantees:
    - every result equals ``check_permission`` on the same resolved snapshot
    - empty input gives an empty mapping
    - duplicate ids collapse to one entry, decided by the first occurrence
    - a failure on one item (a malformed row, a broken folder chain)
      denies that item only; the rest of the batch is unaffected
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, TypeVar

from ..core.access import Operation, Principal, ResourceId, ResourceSnapshot
from .permission_service import evaluate

logger = logging.getLogger(__name__)

T = TypeVar("T")
Resolver = Callable[[ResourceSnapshot], ResourceSnapshot]


def authorize_batch(
    principal: Principal,
    snapshots: Iterable[ResourceSnapshot],
    operation: Operation,
    resolver: Optional[Resolver] = None,
) -> dict[ResourceId, bool]:
    """Decide *operation* for every snapshot.

    Args:
        principal: The acting identity.
        snapshots: Already-loaded snapshots. May be empty or contain duplicates.
        operation: The operation to check for every item.
        resolver: Optional callable turning INHERIT snapshots into concrete
            ones (see ``VisibilityResolver``). Without it an INHERIT snapshot
            is denied for view.

    Returns:
        ``{resource_id: allowed}`` with one entry per distinct id, in the
        order ids were first seen.
    """
    result: dict[ResourceId, bool] = {}
    for snapshot in snapshots:
        if snapshot.id in result:
            logger.debug("Skipping duplicate %s %s in batch", snapshot.kind.value, snapshot.id)
            continue
        result[snapshot.id] = _decide_one(principal, snapshot, operation, resolver)

    if result:
        logger.debug(
            "Batch authorization complete: %d/%d %s authorized for %s",
            sum(1 for allowed in result.values() if allowed),
            len(result),
            getattr(operation, "value", operation),
            principal.display_name,
        )
    return result


def authorize_granted(
    principal: Principal,
    snapshots: Iterable[ResourceSnapshot],
    operation: Operation,
    resolver: Optional[Resolver] = None,
) -> dict[ResourceId, bool]:
    """Filtering mode of ``authorize_batch``: only the ids that are allowed."""
    return {
        resource_id: True
        for resource_id, allowed in authorize_batch(principal, snapshots, operation, resolver).items()
        if allowed
    }


def project_snapshots(
    items: Iterable[T],
    snapshot_of: Callable[[T], ResourceSnapshot],
) -> list[tuple[T, ResourceSnapshot]]:
    """Pair each item with its snapshot.

    An item whose projection fails (a stored visibility out of range, say)
    is logged and left out, so it ends up denied like any other failure.
    """
    pairs: list[tuple[T, ResourceSnapshot]] = []
    for item in items:
        try:
            pairs.append((item, snapshot_of(item)))
        except Exception:
            logger.error(
                "Could not build authorization snapshot, denying item",
                exc_info=True,
                extra={"resource_id": getattr(item, "id", None)},
            )
    return pairs


def filter_authorized(
    principal: Principal,
    items: Iterable[T],
    operation: Operation,
    snapshot_of: Callable[[T], ResourceSnapshot],
    resolver: Optional[Resolver] = None,
) -> list[T]:
    """Keep the items whose snapshot is allowed, preserving input order.

    Duplicate items (same resource id) are kept once. Items that cannot be
    projected into a snapshot are dropped.
    """
    pairs = project_snapshots(items, snapshot_of)
    decisions = authorize_batch(principal, [snapshot for _, snapshot in pairs], operation, resolver)

    kept: list[T] = []
    emitted: set[ResourceId] = set()
    for item, snapshot in pairs:
        if decisions.get(snapshot.id) and snapshot.id not in emitted:
            emitted.add(snapshot.id)
            kept.append(item)
    return kept


def _decide_one(
    principal: Principal,
    snapshot: ResourceSnapshot,
    operation: Operation,
    resolver: Optional[Resolver],
) -> bool:
    try:
        if resolver is not None:
            snapshot = resolver(snapshot)
        return evaluate(principal, snapshot, operation).allowed
    except Exception:
        logger.error(
            "Batch authorization failed for one item, denying it",
            exc_info=True,
            extra={
                "resource_id": snapshot.id,
                "resource_kind": snapshot.kind.value,
                "operation": str(getattr(operation, "value", operation)),
            },
        )
        return False
