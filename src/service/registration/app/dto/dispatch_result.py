from enum import StrEnum
from typing import Optional

import attrs


class DispatchOutcome(StrEnum):
    COMPLETED = 'completed'  # store succeeded -> ack
    REJECTED = 'rejected'  # permanent failure -> ack and report
    RETRY = 'retry'  # retryable failure -> leave unacknowledged

    @property
    def should_ack(self) -> bool:
        return self is not DispatchOutcome.RETRY


@attrs.define
class DispatchResult:
    outcome: DispatchOutcome
    error: Optional[Exception] = None

    @classmethod
    def completed(cls) -> 'DispatchResult':
        return cls(outcome=DispatchOutcome.COMPLETED)

    @classmethod
    def rejected(cls, error: Exception) -> 'DispatchResult':
        return cls(outcome=DispatchOutcome.REJECTED, error=error)

    @classmethod
    def retry(cls, error: Exception) -> 'DispatchResult':
        return cls(outcome=DispatchOutcome.RETRY, error=error)
