"""Change sets — what happened to each package between two snapshots.

INVARIANT: An entry never changes type within one run.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum


class ChangeType(StrEnum):
    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"


@dataclass(frozen=True)
class ChangeSet:
    """Package id → change type. Iterates in package-id order."""

    changes: Mapping[str, ChangeType] = field(default_factory=dict)

    def __iter__(self) -> Iterator[tuple[str, ChangeType]]:
        for package_id in sorted(self.changes):
            yield package_id, self.changes[package_id]

    def __len__(self) -> int:
        return len(self.changes)

    def __bool__(self) -> bool:
        return bool(self.changes)

    def counts(self) -> dict[str, int]:
        counts = {change.value: 0 for change in ChangeType}
        for change in self.changes.values():
            counts[change.value] += 1
        return counts


def diff_fingerprints(old: Mapping[str, str], new: Mapping[str, str]) -> ChangeSet:
    """Compare two ``package id → fingerprint`` tables.

    Ids only in *new* are added, ids only in *old* are removed, ids in both
    with different fingerprints are changed.
    """
    changes: dict[str, ChangeType] = {}
    for package_id, fingerprint in new.items():
        previous = old.get(package_id)
        if previous is None:
            changes[package_id] = ChangeType.ADDED
        elif previous != fingerprint:
            changes[package_id] = ChangeType.CHANGED
    for package_id in old:
        if package_id not in new:
            changes[package_id] = ChangeType.REMOVED
    return ChangeSet(changes)
