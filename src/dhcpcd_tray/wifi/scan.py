"""
Scan result processing.
Cleans raw supplicant scan results into one entry per SSID, sorted for display.
"""

import logging
from typing import Callable, Dict, Iterable, List, Tuple

from .adapter import ScanRecord

logger = logging.getLogger(__name__)


def ssid_key(record: ScanRecord) -> str:
    """Case-insensitive sort key."""
    return record.ssid.lower()


def list_sort(
        records: Iterable[ScanRecord],
        key: Callable[[ScanRecord], str] = ssid_key) -> List[ScanRecord]:
    """
    Stable bottom-up merge sort.

    Runs of `width` items are merged pairwise, doubling `width` each pass,
    so the work is O(n log n) with no recursion. On equal keys the item
    from the left run wins, which keeps input order.
    """
    src: List[Tuple[str, ScanRecord]] = [(key(r), r) for r in records]
    n = len(src)
    width = 1
    while width < n:
        dst: List[Tuple[str, ScanRecord]] = []
        for lo in range(0, n, 2 * width):
            mid = min(lo + width, n)
            hi = min(lo + 2 * width, n)
            i, j = lo, mid
            while i < mid and j < hi:
                if src[i][0] <= src[j][0]:
                    dst.append(src[i])
                    i += 1
                else:
                    dst.append(src[j])
                    j += 1
            dst.extend(src[i:mid])
            dst.extend(src[j:hi])
        src = dst
        width *= 2
    return [record for _, record in src]


def dedup_scans(records: Iterable[ScanRecord]) -> List[ScanRecord]:
    """
    Drop blank SSIDs and keep the strongest record per SSID.

    On equal strength the earlier record wins. Survivors keep their
    input order.
    """
    records = list(records)
    best: Dict[str, int] = {}
    for index, record in enumerate(records):
        if not record.ssid:
            continue
        current = best.get(record.ssid)
        if current is None or records[current].strength < record.strength:
            best[record.ssid] = index
    return [records[index] for index in sorted(best.values())]


def process_scans(records: Iterable[ScanRecord]) -> List[ScanRecord]:
    """
    Turn raw scan results into a display list.

    Returns:
        New list with unique, non-empty SSIDs sorted case-insensitively
    """
    records = list(records)
    cleaned = dedup_scans(records)
    if len(cleaned) != len(records):
        logger.debug(
            f"Dropped {len(records) - len(cleaned)} of {len(records)} "
            f"scan results")
    return list_sort(cleaned)
