"""Lineage resolution over the audit log."""

import logging
from typing import Iterable, List, Set

from common.types import LineageEvent
from coordinator.repositories.audit_repository import AuditRepository

logger = logging.getLogger(__name__)


def lineage_group(key: str, events: Iterable[LineageEvent]) -> Set[str]:
    """
    All keys connected to `key` through any chain of rename events.

    Each event with a from_key is an undirected edge {key, from_key}. The
    group grows by repeated passes over the edges until a pass adds nothing.
    The queried key is always a member, even with no events.
    """
    edges = [(event.key, event.from_key) for event in events if event.from_key]
    group = {key}

    changed = True
    while changed:
        changed = False
        for a, b in edges:
            if a in group or b in group:
                if a not in group:
                    group.add(a)
                    changed = True
                if b not in group:
                    group.add(b)
                    changed = True

    return group


def _newest_first(event: LineageEvent):
    return (event.timestamp, event.sequence or 0)


class LineageService:
    def __init__(self, audit_repo: AuditRepository = None):
        self.audit_repo = audit_repo or AuditRepository()

    def history(self, key: str) -> List[LineageEvent]:
        """
        Every event causally connected to `key` through renames, newest first.

        Querying the current name or any historical name of an object yields
        the same events in the same order.
        """
        group = {key}
        while True:
            events = self.audit_repo.read_for_keys(group)
            expanded = lineage_group(key, events)
            if expanded <= group:
                break
            group |= expanded

        related = sorted(events, key=_newest_first, reverse=True)

        logger.debug(f"History for {key}: {len(related)} events across {len(group)} keys")
        return related
