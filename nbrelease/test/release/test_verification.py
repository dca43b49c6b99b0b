from __future__ import annotations

import sys
from pathlib import Path

from nbrelease.core.config import Config, VerifyConfig
from nbrelease.core.result import Err, Ok
from nbrelease.output.console import MockConsole
from nbrelease.release.model import ReleaseOptions
from nbrelease.release.verification import run_verification, skipped_stages
from nbrelease.test._helpers import FAIL_COMMAND, PASS_COMMAND


def _config(
    test: tuple[str, ...] = PASS_COMMAND,
    build: tuple[str, ...] = PASS_COMMAND,
) -> Config:
    return Config(verify=VerifyConfig(test_command=test, build_command=build, build_cwd="."))


def test_skipped_stages() -> None:
    assert skipped_stages(ReleaseOptions()) == ()
    assert skipped_stages(ReleaseOptions(skip_tests=True)) == ("tests",)
    assert skipped_stages(ReleaseOptions(skip_tests=True, skip_build_check=True)) == (
        "tests",
        "build_check",
    )


def test_both_stages_pass(tmp_path: Path) -> None:
    console = MockConsole()

    result = run_verification(
        project_root=tmp_path, config=_config(), options=ReleaseOptions(), console=console
    )

    assert result == Ok(())
    assert "OK tests passed" in console.messages
    assert "OK build check passed" in console.messages


def test_tests_failure_stops_before_build(tmp_path: Path) -> None:
    marker = tmp_path / "built"
    build = (sys.executable, "-c", f"open({str(marker)!r}, 'w').close()")
    console = MockConsole()

    result = run_verification(
        project_root=tmp_path,
        config=_config(test=FAIL_COMMAND, build=build),
        options=ReleaseOptions(),
        console=console,
    )

    assert isinstance(result, Err)
    assert result.error.kind == "tests_failed"
    assert "exit 3" in result.error.message
    assert not marker.exists()


def test_build_failure(tmp_path: Path) -> None:
    result = run_verification(
        project_root=tmp_path,
        config=_config(build=FAIL_COMMAND),
        options=ReleaseOptions(),
        console=MockConsole(),
    )

    assert isinstance(result, Err)
    assert result.error.kind == "build_check_failed"
    assert result.error.hint is not None
    assert "uncommitted" in result.error.hint


def test_skips_are_announced(tmp_path: Path) -> None:
    console = MockConsole()

    result = run_verification(
        project_root=tmp_path,
        config=_config(test=FAIL_COMMAND, build=FAIL_COMMAND),
        options=ReleaseOptions(skip_tests=True, skip_build_check=True),
        console=console,
    )

    assert result == Ok(("tests", "build_check"))
    assert console.messages == [
        "warning: skipping tests (--skip-tests)",
        "warning: skipping build verification (--skip-build)",
    ]


def test_build_runs_in_build_cwd(tmp_path: Path) -> None:
    android = tmp_path / "android"
    android.mkdir()
    script = "import os, sys; sys.exit(os.path.basename(os.getcwd()) != 'android')"
    check = (sys.executable, "-c", script)
    config = Config(
        verify=VerifyConfig(test_command=PASS_COMMAND, build_command=check, build_cwd="android")
    )

    result = run_verification(
        project_root=tmp_path, config=config, options=ReleaseOptions(), console=MockConsole()
    )

    assert result == Ok(())


def test_command_that_cannot_start(tmp_path: Path) -> None:
    result = run_verification(
        project_root=tmp_path,
        config=_config(test=("no-such-runner-xyz",)),
        options=ReleaseOptions(),
        console=MockConsole(),
    )

    assert isinstance(result, Err)
    assert result.error.kind == "tests_failed"
    assert "could not be started" in result.error.message
