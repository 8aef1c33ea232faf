"""
Entry Addressing
================

This module provides the addressing scheme for nodes of the profile hierarchy
and the static schema tree describing its shape.

``EntryID`` is a path of small integers from the root to a node. The sentinel
``SUMMARY_INDEX`` (-1) appended at a level names the summary child of a panel
instead of an ordinary indexed child.

``EntryInfo`` is a tagged-variant tree of ``PanelInfo``, ``SlotInfo`` and
``SummaryInfo`` nodes of arbitrary depth, navigated by ``EntryID``.

Author: Prof Viewer Core
Version: 1.0
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from prof_viewer.utils.error_handler import EntryMismatchError

logger = logging.getLogger(__name__)

SUMMARY_INDEX = -1


@dataclass(frozen=True)
class EntryIndex:
    """One decoded path segment: either the summary child or slot ``slot``."""

    slot: Optional[int] = None

    @property
    def is_summary(self) -> bool:
        return self.slot is None

    def __repr__(self):
        if self.is_summary:
            return "EntryIndex.SUMMARY"
        return f"EntryIndex.slot({self.slot})"

    @classmethod
    def from_segment(cls, segment: int) -> 'EntryIndex':
        if segment == SUMMARY_INDEX:
            return cls.SUMMARY
        return cls(segment)


EntryIndex.SUMMARY = EntryIndex(None)


@dataclass(frozen=True, order=True)
class EntryID:
    """
    Immutable path from the root of the hierarchy to a node.

    Ordering is lexicographic over the path, so a summary (-1) sorts before
    the ordinary children of the same panel.
    """

    path: Tuple[int, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'path', tuple(self.path))
        for segment in self.path:
            if segment < SUMMARY_INDEX:
                raise ValueError(f"Invalid EntryID segment {segment} in {self.path}")

    @classmethod
    def root(cls) -> 'EntryID':
        return cls(())

    def child(self, index: int) -> 'EntryID':
        if index < 0:
            raise ValueError(f"Child index must be non-negative, got {index}")
        return EntryID(self.path + (index,))

    def summary(self) -> 'EntryID':
        return EntryID(self.path + (SUMMARY_INDEX,))

    def parent(self) -> Optional['EntryID']:
        if not self.path:
            return None
        return EntryID(self.path[:-1])

    def level(self) -> int:
        return len(self.path)

    def is_summary(self) -> bool:
        return bool(self.path) and self.path[-1] == SUMMARY_INDEX

    def index(self, level: int) -> Optional[EntryIndex]:
        if not 0 <= level < len(self.path):
            return None
        return EntryIndex.from_segment(self.path[level])

    def last_index(self) -> Optional[EntryIndex]:
        if not self.path:
            return None
        return EntryIndex.from_segment(self.path[-1])

    def slot_index(self, level: int) -> Optional[int]:
        index = self.index(level)
        return None if index is None else index.slot

    def last_slot_index(self) -> Optional[int]:
        index = self.last_index()
        return None if index is None else index.slot

    def __iter__(self) -> Iterator[EntryIndex]:
        return (EntryIndex.from_segment(segment) for segment in self.path)

    def __str__(self):
        parts = ["s" if segment == SUMMARY_INDEX else str(segment) for segment in self.path]
        return "/" + "/".join(parts)


class EntryKind(Enum):
    PANEL = "panel"
    SLOT = "slot"
    SUMMARY = "summary"


class EntryInfo:
    """Base class of the schema tree variants."""

    kind: EntryKind

    def get(self, entry_id: EntryID) -> Optional['EntryInfo']:
        """
        Resolve an EntryID against this tree.

        Returns None when the id names a child that does not exist (slot index
        past the end, summary of a panel without one).

        Raises:
            EntryMismatchError: If the path descends through a slot or summary
                leaf, i.e. the id and the schema have diverged
        """
        result = self
        for level, index in enumerate(entry_id):
            if not isinstance(result, PanelInfo):
                raise EntryMismatchError(
                    f"EntryID and EntryInfo do not match: {result.kind.value} at level {level} has no children",
                    entry_id,
                )
            if index.is_summary:
                if level != entry_id.level() - 1:
                    raise EntryMismatchError(
                        "EntryID and EntryInfo do not match: summary is a leaf",
                        entry_id,
                    )
                return result.summary
            if index.slot >= len(result.slots):
                return None
            result = result.slots[index.slot]
        return result

    def nodes(self) -> int:
        """Number of top-level nodes under the root panel."""
        if not isinstance(self, PanelInfo):
            raise EntryMismatchError(f"nodes() requires a panel, got {self.kind.value}")
        return len(self.slots)

    def kinds(self) -> List[str]:
        """
        Short names of the panels two levels below the root.

        Returns:
            List[str]: De-duplicated names in first-seen order
        """
        if not isinstance(self, PanelInfo):
            raise EntryMismatchError(f"kinds() requires a panel, got {self.kind.value}")
        result = []
        seen = set()
        for node in self.slots:
            if not isinstance(node, PanelInfo):
                raise EntryMismatchError(f"kinds() expected node panels, got {node.kind.value}")
            for kind in node.slots:
                if not isinstance(kind, PanelInfo):
                    raise EntryMismatchError(f"kinds() expected kind panels, got {kind.kind.value}")
                if kind.short_name not in seen:
                    seen.add(kind.short_name)
                    result.append(kind.short_name)
        return result

    def walk(self, entry_id: Optional[EntryID] = None) -> Iterator[Tuple[EntryID, 'EntryInfo']]:
        """Yield (EntryID, EntryInfo) pairs depth-first in display order."""
        if entry_id is None:
            entry_id = EntryID.root()
        yield entry_id, self
        if isinstance(self, PanelInfo):
            if self.summary is not None:
                yield entry_id.summary(), self.summary
            for i, slot in enumerate(self.slots):
                yield from slot.walk(entry_id.child(i))


@dataclass
class SummaryInfo(EntryInfo):
    """Aggregate utilization curve of the parent panel."""

    color: str
    kind = EntryKind.SUMMARY


@dataclass
class SlotInfo(EntryInfo):
    """Leaf row-group, e.g. one processor track."""

    short_name: str
    long_name: str
    max_rows: int
    kind = EntryKind.SLOT

    def __post_init__(self):
        if self.max_rows < 0:
            raise ValueError(f"max_rows must be non-negative, got {self.max_rows}")


@dataclass
class PanelInfo(EntryInfo):
    short_name: str
    long_name: str
    summary: Optional[SummaryInfo] = None
    slots: List[EntryInfo] = field(default_factory=list)
    kind = EntryKind.PANEL

    def __post_init__(self):
        for child in self.slots:
            if isinstance(child, SummaryInfo):
                raise EntryMismatchError(f"Panel '{self.short_name}' lists a summary among its slots")
