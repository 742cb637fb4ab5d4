"""Ordered store of test records observed during a run."""

from collections.abc import Iterable, Iterator, Sequence

from cipulse_reporter.models.record import TestRecord


class TestRecordAccumulator:
    """Append-only sequence of test records, emptied at the start of each run."""

    __test__ = False

    def __init__(self) -> None:
        self._records: list[TestRecord] = []

    def append(self, record: TestRecord) -> None:
        self._records.append(record)

    def extend(self, records: Iterable[TestRecord]) -> None:
        self._records.extend(records)

    def reset(self) -> None:
        """Drop all records; previously returned views are left untouched."""
        self._records = []

    @property
    def records(self) -> Sequence[TestRecord]:
        """Immutable view of the records in arrival order."""
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[TestRecord]:
        return iter(tuple(self._records))
