"""
Optimistic read-compute-commit loop over a single UserProgress record

Every mutating operation (submission perks, point spends, profile and
referral perks) goes through run_progress_transaction(). The mutate
callback receives a private copy of the current record, edits it in
place and returns whatever outcome the caller wants back. The copy is
written whole with commit_if_unchanged(); a version mismatch or a store
timeout discards the attempt and starts over from a fresh read.
"""
import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from luku_engine.errors import ConflictError, NotFoundError, StaleWriteError
from luku_engine.schemas import UserProgress
from luku_engine.services.progress_repository import TIMEOUT_ERRORS, ProgressRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

BACKOFF_BASE_SECONDS = 0.02


@dataclass
class TransactionResult(Generic[T]):
    progress: UserProgress
    outcome: T
    committed: bool
    attempts: int


def run_progress_transaction(
    repository: ProgressRepository,
    user_id: str,
    mutate: Callable[[UserProgress], T],
    *,
    max_attempts: int = 5,
    attempt_timeout: float = 10.0,
    monotonic: Callable[[], float] = time.monotonic,
    sleep: Optional[Callable[[float], None]] = time.sleep,
) -> TransactionResult[T]:
    """
    Apply mutate() to the user's progress atomically.

    If mutate() leaves the record unchanged nothing is written. Errors
    raised by mutate() (InsufficientPointsError, InvalidArgumentError...)
    abort immediately without retrying.

    Raises:
        NotFoundError: no UserProgress exists for user_id
        ConflictError: every attempt lost a race or timed out
    """
    for attempt in range(1, max_attempts + 1):
        started = monotonic()
        try:
            snapshot = repository.read_user(user_id)
        except TIMEOUT_ERRORS as e:
            logger.warning(f"Read timed out for user {user_id} (attempt {attempt}/{max_attempts}): {e}")
            _backoff(attempt, sleep)
            continue

        if snapshot is None:
            raise NotFoundError(f"User progress not found for {user_id}")

        working = snapshot.model_copy(deep=True)
        outcome = mutate(working)

        if working == snapshot:
            return TransactionResult(progress=snapshot, outcome=outcome, committed=False, attempts=attempt)

        elapsed = monotonic() - started
        if elapsed > attempt_timeout:
            logger.warning(
                f"Transaction attempt {attempt}/{max_attempts} for user {user_id} "
                f"exceeded {attempt_timeout}s ({elapsed:.2f}s), discarding"
            )
            continue

        try:
            stored = repository.commit_if_unchanged(user_id, snapshot.version, working)
        except StaleWriteError:
            logger.warning(f"Write conflict for user {user_id} (attempt {attempt}/{max_attempts}), retrying")
            _backoff(attempt, sleep)
            continue
        except TIMEOUT_ERRORS as e:
            logger.warning(f"Commit timed out for user {user_id} (attempt {attempt}/{max_attempts}): {e}")
            _backoff(attempt, sleep)
            continue

        return TransactionResult(progress=stored, outcome=outcome, committed=True, attempts=attempt)

    logger.error(f"Transaction for user {user_id} failed after {max_attempts} attempts")
    raise ConflictError(f"Could not update progress for {user_id} after {max_attempts} attempts, please retry")


def _backoff(attempt: int, sleep: Optional[Callable[[float], None]]) -> None:
    if sleep is not None:
        sleep(BACKOFF_BASE_SECONDS * attempt * (1 + random.random()))
