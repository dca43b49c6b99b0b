from __future__ import annotations

from dataclasses import dataclass, replace

import pytest

from nbrelease.release.fsm import StepOutcome, advance, finish, run_state_machine


@dataclass(frozen=True)
class _Counter:
    step: str
    count: int = 0


def _bump(s: _Counter) -> StepOutcome[_Counter, str]:
    if s.count >= 3:
        return advance(replace(s, step="done"))
    return advance(replace(s, count=s.count + 1))


def _done(s: _Counter) -> StepOutcome[_Counter, str]:
    return finish(f"finished at {s.count}")


def test_runs_until_finish() -> None:
    result = run_state_machine(
        initial_state=_Counter(step="bump"),
        get_step=lambda s: s.step,
        handlers={"bump": _bump, "done": _done},
    )
    assert result == "finished at 3"


def test_each_advance_selects_the_next_handler() -> None:
    visited: list[int] = []

    def bump(s: _Counter) -> StepOutcome[_Counter, str]:
        visited.append(s.count)
        return _bump(s)

    run_state_machine(
        initial_state=_Counter(step="bump"),
        get_step=lambda s: s.step,
        handlers={"bump": bump, "done": _done},
    )

    assert visited == [0, 1, 2, 3]


def test_unknown_step_is_a_bug() -> None:
    with pytest.raises(AssertionError, match="no handler for release step: missing"):
        run_state_machine(
            initial_state=_Counter(step="missing"),
            get_step=lambda s: s.step,
            handlers={"bump": _bump},
        )
