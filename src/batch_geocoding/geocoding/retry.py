"""
Retry policy for a single geocode query, as an explicit state machine.

    PENDING --success--> SUCCEEDED
    PENDING --retryable failure--> RETRYING(1)
    RETRYING(n) --retryable failure, n+1 < max--> RETRYING(n+1)
    any --terminal failure or attempts exhausted--> FAILED_TERMINAL

`transition` is pure: it never sleeps, calls the network or mutates its input.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Optional, Union

from ..utils.errors import EmptyResult, GeocodeFailure, NotFound, ProviderError, Timeout
from .models import Coordinates


class RetryPhase(StrEnum):
    PENDING = "pending"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED_TERMINAL = "failed_terminal"


@dataclass(frozen=True)
class RetryState:
    phase: RetryPhase = RetryPhase.PENDING
    attempts: int = 0  # completed attempts
    coordinates: Optional[Coordinates] = None
    error: Optional[GeocodeFailure] = None

    @property
    def is_final(self) -> bool:
        return self.phase in (RetryPhase.SUCCEEDED, RetryPhase.FAILED_TERMINAL)


Outcome = Union[Coordinates, GeocodeFailure]


def is_retryable(error: GeocodeFailure, retry_empty_results: bool = True) -> bool:
    """Timeouts and provider errors are retried; NotFound is terminal."""
    if isinstance(error, EmptyResult):
        return retry_empty_results
    if isinstance(error, NotFound):
        return False
    return isinstance(error, (Timeout, ProviderError))


def transition(
    state: RetryState,
    outcome: Outcome,
    max_attempts: int,
    retry_empty_results: bool = True,
) -> RetryState:
    """
    Advance the state machine by one completed attempt.

    Args:
        state: Current (non-final) state
        outcome: Coordinates on success, or the failure the attempt raised
        max_attempts: Upper bound on attempts, including the first
        retry_empty_results: Whether an empty provider result is worth retrying

    Returns:
        The next state
    """
    if state.is_final:
        raise ValueError(f"Cannot transition from final state {state.phase}")
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    attempts = state.attempts + 1

    if isinstance(outcome, Coordinates):
        return RetryState(RetryPhase.SUCCEEDED, attempts, coordinates=outcome)

    if is_retryable(outcome, retry_empty_results) and attempts < max_attempts:
        return RetryState(RetryPhase.RETRYING, attempts, error=outcome)

    return RetryState(RetryPhase.FAILED_TERMINAL, attempts, error=outcome)


def backoff_delay(state: RetryState, base_delay_s: float) -> float:
    """Delay before the next attempt: base delay times the attempts made so far (1s, 2s, 3s...)."""
    if state.phase is not RetryPhase.RETRYING:
        return 0.0
    return base_delay_s * state.attempts
