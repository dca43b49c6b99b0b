from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar

S = TypeVar("S")
R = TypeVar("R")


@dataclass(frozen=True, slots=True)
class StepAdvance(Generic[S]):
    session: S


@dataclass(frozen=True, slots=True)
class StepFinish(Generic[R]):
    result: R


StepOutcome: TypeAlias = StepAdvance[S] | StepFinish[R]
StepHandler: TypeAlias = Callable[[S], StepOutcome[S, R]]


def advance(session: S) -> StepAdvance[S]:
    return StepAdvance(session=session)


def finish(result: R) -> StepFinish[R]:
    return StepFinish(result=result)


def run_state_machine(
    *,
    initial_state: S,
    get_step: Callable[[S], str],
    handlers: Mapping[str, StepHandler[S, R]],
) -> R:
    """Run handlers until one finishes.

    Each handler either advances to a new session (whose step selects the next
    handler) or finishes with the terminal result.
    """
    current = initial_state

    while True:
        step = get_step(current)
        handler = handlers.get(step)
        if handler is None:
            raise AssertionError(f"no handler for release step: {step}")

        outcome = handler(current)
        if isinstance(outcome, StepFinish):
            return outcome.result

        current = outcome.session
