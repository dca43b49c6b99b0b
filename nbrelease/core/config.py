"""Typed release configuration.

The configuration lives in an optional ``release.toml`` at the project root.
Every key has a default matching the NativeBridge layout, so a project that
follows it needs no file at all.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_number, get_str, get_str_list, get_table

__all__ = [
    "CONFIG_FILE_NAME",
    "ArtifactsConfig",
    "Config",
    "ConfigError",
    "DescriptorsConfig",
    "GitConfig",
    "VerifyConfig",
    "load_config",
    "load_project_config",
]

CONFIG_FILE_NAME = "release.toml"

DEFAULT_APP_NAME = "NativeBridge"
DEFAULT_REMOTE = "origin"
DEFAULT_RELEASE_BRANCHES = ("main", "master")
DEFAULT_MANIFEST = "package.json"
DEFAULT_BUILD_DESCRIPTOR = "android/app/build.gradle"
DEFAULT_TEST_COMMAND = ("npm", "test")
DEFAULT_BUILD_COMMAND = ("./gradlew", "assembleRelease", "--no-daemon")
DEFAULT_BUILD_CWD = "android"
DEFAULT_ARTIFACT_NAMES = ("{app}-v{version}.apk", "{app}-iOS-v{version}.app.zip")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when release.toml cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class GitConfig:
    """Remote and branch policy.

    ``network_timeout`` is None when pushes may block indefinitely.
    """

    remote: str = DEFAULT_REMOTE
    release_branches: tuple[str, ...] = DEFAULT_RELEASE_BRANCHES
    network_timeout: float | None = None


@dataclass(frozen=True, slots=True)
class DescriptorsConfig:
    """Descriptor paths, relative to the project root."""

    manifest: str = DEFAULT_MANIFEST
    build_descriptor: str = DEFAULT_BUILD_DESCRIPTOR


@dataclass(frozen=True, slots=True)
class VerifyConfig:
    test_command: tuple[str, ...] = DEFAULT_TEST_COMMAND
    test_cwd: str = "."
    build_command: tuple[str, ...] = DEFAULT_BUILD_COMMAND
    build_cwd: str = DEFAULT_BUILD_CWD


@dataclass(frozen=True, slots=True)
class ArtifactsConfig:
    """Artifact names the downstream build is expected to produce.

    Templates accept ``{app}`` and ``{version}``.
    """

    names: tuple[str, ...] = DEFAULT_ARTIFACT_NAMES

    def render(self, *, app: str, version: str) -> tuple[str, ...]:
        return tuple(n.format(app=app, version=version) for n in self.names)


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    app_name: str = DEFAULT_APP_NAME
    git: GitConfig = field(default_factory=GitConfig)
    descriptors: DescriptorsConfig = field(default_factory=DescriptorsConfig)
    verify: VerifyConfig = field(default_factory=VerifyConfig)
    artifacts: ArtifactsConfig = field(default_factory=ArtifactsConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML)."""
        git: StrDict = get_table(data, "git") or {}
        descriptors: StrDict = get_table(data, "descriptors") or {}
        verify: StrDict = get_table(data, "verify") or {}
        artifacts: StrDict = get_table(data, "artifacts") or {}

        timeout = get_number(git, "network_timeout")
        if timeout is None and "network_timeout" in git:
            raise ValueError("git.network_timeout must be a number of seconds")
        if timeout is not None and timeout < 0:
            raise ValueError("git.network_timeout must be >= 0")

        artifact_names = get_str_list(artifacts, "names") or DEFAULT_ARTIFACT_NAMES
        _check_artifact_templates(artifact_names)

        return cls(
            app_name=get_str(data, "app_name") or DEFAULT_APP_NAME,
            git=GitConfig(
                remote=get_str(git, "remote") or DEFAULT_REMOTE,
                release_branches=get_str_list(git, "release_branches")
                or DEFAULT_RELEASE_BRANCHES,
                network_timeout=timeout or None,
            ),
            descriptors=DescriptorsConfig(
                manifest=get_str(descriptors, "manifest") or DEFAULT_MANIFEST,
                build_descriptor=get_str(descriptors, "build_descriptor")
                or DEFAULT_BUILD_DESCRIPTOR,
            ),
            verify=VerifyConfig(
                test_command=get_str_list(verify, "test_command") or DEFAULT_TEST_COMMAND,
                test_cwd=get_str(verify, "test_cwd") or ".",
                build_command=get_str_list(verify, "build_command") or DEFAULT_BUILD_COMMAND,
                build_cwd=get_str(verify, "build_cwd") or DEFAULT_BUILD_CWD,
            ),
            artifacts=ArtifactsConfig(
                names=artifact_names,
            ),
        )


def _check_artifact_templates(names: tuple[str, ...]) -> None:
    for name in names:
        try:
            name.format(app="App", version="0.0.0")
        except (AttributeError, KeyError, IndexError, ValueError) as e:
            raise ValueError(
                f"artifacts.names: bad template {name!r}; use {{app}} and {{version}} only"
            ) from e


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to release.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_project_config(root: Path, explicit: Path | None = None) -> Result[Config, ConfigError]:
    """Load the project's config, or defaults when no file is present.

    An explicit path must exist; the implicit ``release.toml`` is optional.
    """
    if explicit is not None:
        return load_config(explicit)

    path = root / CONFIG_FILE_NAME
    if not path.exists():
        return Ok(Config())
    return load_config(path)
