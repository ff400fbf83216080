"""
Service directory model and the filter/search engine behind the listing.

The engine is a set of pure functions: the caller owns the search query and
status filter and passes them in on every call; nothing here is mutated.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from status_taxonomy import ErrorWithCode, Offline, Online, classify


class FilterTag(str, Enum):
    ALL = "all"
    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ServiceRecord:
    """
    One onion service entry in the directory.

    Attributes:
        title (str): Display name.
        name (str): Identifier, unique within a snapshot.
        onion_address (str): The service's .onion URL.
        status (str): "online", "offline", "unknown" or "error-<code>".
        prev_status (str): Status seen at the previous check.
        last_checked (Optional[datetime]): None if never checked.
        tags (Tuple[str, ...]): Free-text labels in display order.
    """
    title: str
    name: str
    onion_address: str
    status: str = "unknown"
    prev_status: str = "unknown"
    last_checked: Optional[datetime] = None
    category: Optional[str] = None
    description: Optional[str] = None
    official_website: Optional[str] = None
    github: Optional[str] = None
    tags: Tuple[str, ...] = ()


def _contains(value: Optional[str], needle: str) -> bool:
    # None and "" never match
    return bool(value) and needle in value.lower()


def matches_query(record: ServiceRecord, query: str) -> bool:
    """
    Case-insensitive substring match on title, name, description,
    category and tags. An empty query matches everything.
    """
    if not query:
        return True
    needle = query.lower()
    fields = (record.title, record.name, record.description, record.category)
    return any(_contains(value, needle) for value in fields) or any(_contains(tag, needle) for tag in record.tags)


def matches_status(record: ServiceRecord, status_filter: FilterTag) -> bool:
    # error-* statuses fall in no bucket except ALL
    status_filter = FilterTag(status_filter)
    if status_filter is FilterTag.ALL:
        return True
    return record.status == status_filter.value


def filter_services(services: Sequence[ServiceRecord], query: str = "",
                    status_filter: FilterTag = FilterTag.ALL) -> List[ServiceRecord]:
    """
    Returns the records that match both the query and the status filter.

    Args:
        services: The snapshot, in display order.
        query (str): Free-text search; empty matches everything.
        status_filter (FilterTag): Status bucket to show.

    Returns:
        List[ServiceRecord]: Matching records in their original order.
    """
    status_filter = FilterTag(status_filter)
    return [s for s in services if matches_query(s, query) and matches_status(s, status_filter)]


def status_counts(services: Iterable[ServiceRecord]) -> Dict[FilterTag, int]:
    """Per-bucket counts over the whole snapshot, independent of any search."""
    counts = {tag: 0 for tag in FilterTag}
    for service in services:
        counts[FilterTag.ALL] += 1
        if service.status in (FilterTag.ONLINE.value, FilterTag.OFFLINE.value, FilterTag.UNKNOWN.value):
            counts[FilterTag(service.status)] += 1
    return counts


def error_count(services: Iterable[ServiceRecord]) -> int:
    return sum(1 for s in services if isinstance(classify(s.status), ErrorWithCode))


def format_last_checked(last_checked: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Relative age of the last check, e.g. "5m ago", "3h ago", "2d ago"."""
    if last_checked is None:
        return "Never"
    now = now or datetime.now(timezone.utc)
    if last_checked.tzinfo is None:
        last_checked = last_checked.replace(tzinfo=timezone.utc)
    minutes = int((now - last_checked).total_seconds() // 60)
    if minutes < 60:
        return f"{minutes}m ago"
    if minutes < 24 * 60:
        return f"{minutes // 60}h ago"
    return f"{minutes // (24 * 60)}d ago"


def summarize(services: Sequence[ServiceRecord]) -> Dict[str, int]:
    classes = [classify(s.status) for s in services]
    return {
        "online": sum(1 for c in classes if isinstance(c, Online)),
        "offline": sum(1 for c in classes if isinstance(c, Offline)),
        "error": sum(1 for c in classes if isinstance(c, ErrorWithCode)),
        "total": len(classes),
    }


if __name__ == "__main__":
    import sys
    import config
    from url_populator import load_snapshot

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(message)s')

    query = sys.argv[1] if len(sys.argv) > 1 else ""
    status_filter = FilterTag(sys.argv[2]) if len(sys.argv) > 2 else FilterTag.ALL

    services = load_snapshot(config.SNAPSHOT_PATH)
    counts = status_counts(services)
    logging.info("[*] " + "  ".join(f"{tag.value}: {counts[tag]}" for tag in FilterTag))

    for service in filter_services(services, query, status_filter):
        label = classify(service.status).label
        logging.info(f"  {service.title} [{label}] {service.onion_address} ({format_last_checked(service.last_checked)})")

    summary = summarize(services)
    logging.info(f"[+] Online: {summary['online']}  Offline: {summary['offline']}  "
                 f"Errors: {summary['error']}  Total: {summary['total']}")
