'''
Set reconciliation between the current members of a roster or group and a requested member list.
Used for class attendee rosters and client group memberships.
'''
from dataclasses import dataclass
from typing import Hashable, Iterable, TypeVar

T = TypeVar("T", bound=Hashable)


def dedupe_ids(ids: Iterable[T]) -> list[T]:
    """Removes duplicates, keeping first-seen order."""
    seen: set = set()
    unique: list[T] = []
    for item in ids:
        if item not in seen:
            seen.add(item)
            unique.append(item)
    return unique


@dataclass(frozen=True)
class MembershipDiff:
    added: list
    removed: list
    kept: list

    @classmethod
    def compute(cls, current: Iterable[T], desired: Iterable[T]) -> "MembershipDiff":
        """
        added = desired - current, removed = current - desired, kept = both.
        `added` and `kept` follow the desired order, `removed` the current order.
        """
        current_ids = dedupe_ids(current)
        desired_ids = dedupe_ids(desired)
        current_set = set(current_ids)
        desired_set = set(desired_ids)
        return cls(
            added=[i for i in desired_ids if i not in current_set],
            removed=[i for i in current_ids if i not in desired_set],
            kept=[i for i in desired_ids if i in current_set],
        )

    @property
    def added_count(self) -> int:
        return len(self.added)

    @property
    def removed_count(self) -> int:
        return len(self.removed)

    @property
    def kept_count(self) -> int:
        return len(self.kept)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed)
