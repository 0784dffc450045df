"""
Per-partition offset bookkeeping for out-of-order, at-least-once processing.

Messages of one partition are processed concurrently and may finish in any
order; a failed message is redelivered by seeking back to it. Kafka only
stores one committed position per partition, so the position may advance
only past the contiguous run of finished offsets:

    delivered:  10 11 12 13 14
    finished:   10    12 13        -> commit 11 (next offset to read)
    finished:   10 11 12 13        -> commit 14

Offsets finished in this process are remembered until committed, so that a
seek-back redelivery skips them instead of processing them twice.
"""


class PartitionOffsetTracker:
    def __init__(self) -> None:
        self._processing: set[int] = set()
        self._unfinished: set[int] = set()  # processing or awaiting redelivery
        self._finished: set[int] = set()
        self._committed: int | None = None

    @property
    def committed(self) -> int | None:
        return self._committed

    def begin(self, offset: int) -> bool:
        """
        Mark an offset as being processed.

        Returns False when the offset must be skipped: already finished,
        already processing, or below the committed position.
        """
        if self._committed is not None and offset < self._committed:
            return False
        if offset in self._finished or offset in self._processing:
            return False

        self._processing.add(offset)
        self._unfinished.add(offset)
        return True

    def ack(self, offset: int) -> None:
        self._processing.discard(offset)
        self._unfinished.discard(offset)
        self._finished.add(offset)

    def nack(self, offset: int) -> None:
        """The offset stays unfinished and blocks the commit position until acked"""
        self._processing.discard(offset)

    def committable(self) -> int | None:
        """Next offset to commit, or None when the position has not advanced"""
        # Snapshots: the revoke callback calls this from the poll thread
        unfinished, finished = tuple(self._unfinished), tuple(self._finished)
        if unfinished:
            # Everything below the lowest unfinished offset is finished or never delivered
            candidate = min(unfinished)
            if not any(o < candidate for o in finished):
                return None
        elif finished:
            candidate = max(finished) + 1
        else:
            return None

        if self._committed is not None and candidate <= self._committed:
            return None
        return candidate

    def mark_committed(self, offset: int) -> None:
        self._committed = offset
        self._finished = {o for o in self._finished if o >= offset}

    @property
    def pending_count(self) -> int:
        """Finished offsets not yet covered by a commit"""
        return len(self._finished)

    @property
    def in_flight(self) -> int:
        return len(self._processing)
