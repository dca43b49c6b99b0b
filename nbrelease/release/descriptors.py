from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path

from nbrelease.core.config import Config
from nbrelease.core.result import Err, Ok, Result
from nbrelease.core.structured import as_str_dict
from nbrelease.platform.files import atomic_write_text, read_text_exact
from nbrelease.release.errors import ReleaseError
from nbrelease.release.model import DescriptorChange, DescriptorEdit
from nbrelease.release.version import Version, numeric_encoding

_JSON_VERSION_RE = re.compile(r'"version"\s*:\s*"((?:[^"\\]|\\.)*)"')
_VERSION_CODE_RE = re.compile(r"(?m)^(\s*versionCode\s*=?\s*)(\d+)")
_VERSION_NAME_RE = re.compile(r'(?m)^(\s*versionName\s*=?\s*)"([^"]*)"')


@dataclass(frozen=True, slots=True)
class DescriptorFiles:
    manifest: Path
    build_descriptor: Path

    def all(self) -> list[Path]:
        return [self.manifest, self.build_descriptor]


def descriptor_files(*, project_root: Path, config: Config) -> DescriptorFiles:
    return DescriptorFiles(
        manifest=project_root / config.descriptors.manifest,
        build_descriptor=project_root / config.descriptors.build_descriptor,
    )


def plan_version(
    *, files: DescriptorFiles, version: Version
) -> Result[list[DescriptorEdit], ReleaseError]:
    """Compute every descriptor edit for ``version`` without writing."""
    manifest = _plan_manifest(path=files.manifest, version=version)
    if isinstance(manifest, Err):
        return manifest

    gradle = _plan_build_descriptor(path=files.build_descriptor, version=version)
    if isinstance(gradle, Err):
        return gradle

    return Ok([manifest.value, gradle.value])


def apply_version(*, files: DescriptorFiles, version: Version) -> Result[list[Path], ReleaseError]:
    """Write the version into every descriptor; return the files that changed.

    Files already at ``version`` are left untouched, so a second call is a
    no-op. Nothing is staged.
    """
    planned = plan_version(files=files, version=version)
    if isinstance(planned, Err):
        return planned

    changed: list[Path] = []
    for edit in planned.value:
        if not edit.changed:
            continue
        try:
            atomic_write_text(edit.path, edit.content, encoding="utf-8")
        except OSError as e:
            return Err(
                ReleaseError(
                    kind="descriptor_io",
                    message=f"failed to write {edit.path.name}: {e}",
                    hint=str(edit.path),
                )
            )
        changed.append(edit.path)

    return Ok(changed)


def _read(path: Path) -> Result[str, ReleaseError]:
    try:
        return Ok(read_text_exact(path))
    except OSError as e:
        return Err(
            ReleaseError(
                kind="descriptor_io",
                message=f"failed to read {path.name}: {e}",
                hint=str(path),
            )
        )
    except UnicodeDecodeError as e:
        return Err(
            ReleaseError(
                kind="invalid_descriptor",
                message=f"{path.name} is not valid UTF-8 ({e.reason})",
                hint=str(path),
            )
        )


def _plan_manifest(*, path: Path, version: Version) -> Result[DescriptorEdit, ReleaseError]:
    text = _read(path)
    if isinstance(text, Err):
        return text

    try:
        obj: object = json.loads(text.value)
    except json.JSONDecodeError as e:
        return Err(
            ReleaseError(
                kind="invalid_descriptor",
                message=f"invalid JSON in {path.name}: {e}",
                hint=str(path),
            )
        )

    data = as_str_dict(obj)
    if data is None:
        return Err(
            ReleaseError(
                kind="invalid_descriptor",
                message=f"invalid JSON root in {path.name}",
                hint=str(path),
            )
        )

    prev = data.get("version")
    if not isinstance(prev, str):
        return Err(
            ReleaseError(
                kind="invalid_descriptor",
                message=f"missing version in {path.name}",
                hint=str(path),
            )
        )

    change = DescriptorChange(field="version", before=prev, after=version.raw)
    if change.is_noop:
        return Ok(DescriptorEdit(path=path, changes=(change,), content=text.value))

    # Replace the value in place so key order and formatting stay as they are.
    # A nested "version" key can come first; only accept the candidate whose
    # parsed form differs from the file by the top-level field alone.
    expected = dict(data)
    expected["version"] = version.raw
    for m in _JSON_VERSION_RE.finditer(text.value):
        candidate = text.value[: m.start(1)] + version.raw + text.value[m.end(1) :]
        try:
            parsed: object = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if parsed == expected:
            return Ok(DescriptorEdit(path=path, changes=(change,), content=candidate))

    return Err(
        ReleaseError(
            kind="invalid_descriptor",
            message=f"could not locate the top-level version field in {path.name}",
            hint=str(path),
        )
    )


def _plan_build_descriptor(
    *, path: Path, version: Version
) -> Result[DescriptorEdit, ReleaseError]:
    text = _read(path)
    if isinstance(text, Err):
        return text

    code = str(numeric_encoding(version))
    codes = [m.group(2) for m in _VERSION_CODE_RE.finditer(text.value)]
    names = [m.group(2) for m in _VERSION_NAME_RE.finditer(text.value)]

    if not codes:
        return Err(
            ReleaseError(
                kind="invalid_descriptor",
                message=f"missing versionCode in {path.name}",
                hint=str(path),
            )
        )
    if not names:
        return Err(
            ReleaseError(
                kind="invalid_descriptor",
                message=f"missing versionName in {path.name}",
                hint=str(path),
            )
        )

    # Every occurrence is rewritten (product flavors may repeat the fields).
    out = _VERSION_CODE_RE.sub(lambda m: m.group(1) + code, text.value)
    out = _VERSION_NAME_RE.sub(lambda m: f'{m.group(1)}"{version.raw}"', out)

    changes = (
        DescriptorChange(field="versionCode", before=_joined(codes), after=code),
        DescriptorChange(field="versionName", before=_joined(names), after=version.raw),
    )
    return Ok(DescriptorEdit(path=path, changes=changes, content=out))


def _joined(values: list[str]) -> str:
    return ", ".join(dict.fromkeys(values))
