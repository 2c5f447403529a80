# File: medialib/services/batch.py
"""
Result type shared by every batch operation.

A batch never fails as a whole because one element failed: each element is
either committed or recorded in ``failed`` with the reason.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, TypeVar

T = TypeVar("T")


@dataclass
class BatchFailure(Generic[T]):
    item: T
    reason: str


@dataclass
class BatchResult(Generic[T]):
    committed: List[T] = field(default_factory=list)
    failed: List[BatchFailure[T]] = field(default_factory=list)

    def add_committed(self, item: T) -> None:
        self.committed.append(item)

    def add_failure(self, item: T, reason: str) -> None:
        self.failed.append(BatchFailure(item=item, reason=reason))

    def failed_as_dicts(self, key: str) -> List[Dict[str, Any]]:
        """
        Render failures as ``{key: identifier, "reason": ...}``.

        Dict items contribute ``item[key]``; scalar items are used as is.
        """
        rendered = []
        for failure in self.failed:
            item = failure.item
            identifier = item.get(key) if isinstance(item, dict) else item
            rendered.append({key: identifier, "reason": failure.reason})
        return rendered
