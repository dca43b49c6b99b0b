from __future__ import annotations

from pathlib import Path

from nbrelease.core.config import Config
from nbrelease.core.result import Err, Ok, Result
from nbrelease.output.console import ConsoleProtocol, Style
from nbrelease.platform.process import run_silent
from nbrelease.release.errors import ReleaseError
from nbrelease.release.model import ReleaseOptions, VerificationStage


def skipped_stages(options: ReleaseOptions) -> tuple[VerificationStage, ...]:
    skipped: list[VerificationStage] = []
    if options.skip_tests:
        skipped.append("tests")
    if options.skip_build_check:
        skipped.append("build_check")
    return tuple(skipped)


def run_verification(
    *,
    project_root: Path,
    config: Config,
    options: ReleaseOptions,
    console: ConsoleProtocol,
) -> Result[tuple[VerificationStage, ...], ReleaseError]:
    """Run the test suite, then the build check.

    Returns the stages that were skipped. On failure the descriptor edits
    are left in the working tree for inspection.
    """
    if options.skip_tests:
        console.warning("skipping tests (--skip-tests)")
    else:
        tests = _run_stage(
            cmd=list(config.verify.test_command),
            cwd=project_root / config.verify.test_cwd,
            console=console,
        )
        if isinstance(tests, Err):
            return Err(
                ReleaseError(
                    kind="tests_failed",
                    message=f"tests failed: {tests.error}",
                    hint="Descriptor edits are left uncommitted; fix and re-run.",
                )
            )
        console.success("tests passed")

    if options.skip_build_check:
        console.warning("skipping build verification (--skip-build)")
    else:
        build = _run_stage(
            cmd=list(config.verify.build_command),
            cwd=project_root / config.verify.build_cwd,
            console=console,
        )
        if isinstance(build, Err):
            return Err(
                ReleaseError(
                    kind="build_check_failed",
                    message=f"build check failed: {build.error}",
                    hint="Descriptor edits are left uncommitted; fix and re-run.",
                )
            )
        console.success("build check passed")

    return Ok(skipped_stages(options))


def _run_stage(*, cmd: list[str], cwd: Path, console: ConsoleProtocol) -> Result[None, str]:
    console.print(f"({cwd.name or cwd}) {' '.join(cmd)}", Style.DIM)
    result = run_silent(cmd, cwd=cwd)
    if isinstance(result, Err):
        e = result.error
        if e.returncode == -1:
            return Err(f"{cmd[0]} could not be started ({e.stderr.strip()})")
        return Err(f"exit {e.returncode}")
    return Ok(None)
