import pytest

from batch_geocoding.geocoding.models import Coordinates
from batch_geocoding.geocoding.retry import RetryPhase, RetryState, backoff_delay, is_retryable, transition
from batch_geocoding.utils.errors import EmptyResult, NotFound, ProviderError, Timeout

HERE = Coordinates(51.5, -0.12)


def test_pending_to_succeeded():
    state = transition(RetryState(), HERE, max_attempts=3)

    assert state.phase is RetryPhase.SUCCEEDED
    assert state.attempts == 1
    assert state.coordinates == HERE


@pytest.mark.parametrize("error", [Timeout("slow"), ProviderError("boom"), EmptyResult("none")])
def test_retryable_failures_move_to_retrying(error):
    state = transition(RetryState(), error, max_attempts=3)

    assert state.phase is RetryPhase.RETRYING
    assert state.attempts == 1
    assert state.error is error


def test_not_found_is_terminal():
    state = transition(RetryState(), NotFound("nowhere"), max_attempts=3)

    assert state.phase is RetryPhase.FAILED_TERMINAL
    assert state.attempts == 1


def test_empty_result_terminal_when_not_retrying_empties():
    state = transition(RetryState(), EmptyResult("none"), max_attempts=3, retry_empty_results=False)

    assert state.phase is RetryPhase.FAILED_TERMINAL


def test_attempts_exhausted():
    state = RetryState()
    for _ in range(3):
        state = transition(state, Timeout("slow"), max_attempts=3)

    assert state.phase is RetryPhase.FAILED_TERMINAL
    assert state.attempts == 3
    assert isinstance(state.error, Timeout)


def test_retrying_then_success():
    state = transition(RetryState(), ProviderError("boom"), max_attempts=3)
    state = transition(state, HERE, max_attempts=3)

    assert state.phase is RetryPhase.SUCCEEDED
    assert state.attempts == 2


def test_single_attempt_budget():
    state = transition(RetryState(), Timeout("slow"), max_attempts=1)

    assert state.phase is RetryPhase.FAILED_TERMINAL


def test_final_states_reject_transitions():
    done = RetryState(RetryPhase.SUCCEEDED, 1, coordinates=HERE)

    with pytest.raises(ValueError):
        transition(done, HERE, max_attempts=3)


def test_transition_does_not_mutate_input():
    start = RetryState()
    transition(start, Timeout("slow"), max_attempts=3)

    assert start == RetryState()


def test_backoff_grows_with_attempts():
    first = RetryState(RetryPhase.RETRYING, 1)
    second = RetryState(RetryPhase.RETRYING, 2)

    assert backoff_delay(first, 1.0) == 1.0
    assert backoff_delay(second, 1.0) == 2.0
    assert backoff_delay(RetryState(), 1.0) == 0.0


def test_is_retryable():
    assert is_retryable(Timeout("x"))
    assert is_retryable(ProviderError("x"))
    assert not is_retryable(NotFound("x"))
    assert is_retryable(EmptyResult("x"))
    assert not is_retryable(EmptyResult("x"), retry_empty_results=False)
