from __future__ import annotations

import re
from dataclasses import dataclass

from nbrelease.core.result import Err, Ok, Result
from nbrelease.release.errors import ReleaseError

VERSION_GRAMMAR = "MAJOR.MINOR.PATCH[-label]"

_VERSION_RE = re.compile(r"([0-9]+)\.([0-9]+)\.([0-9]+)(?:-([0-9A-Za-z.]+))?")


@dataclass(frozen=True, slots=True)
class Version:
    """A release version as typed by the operator.

    ``raw`` is kept verbatim: it names the marker and fills the descriptors.
    """

    major: int
    minor: int
    patch: int
    label: str | None
    raw: str

    @property
    def is_prerelease(self) -> bool:
        return self.label is not None

    def __str__(self) -> str:
        return self.raw


def parse_version(raw: str) -> Result[Version, ReleaseError]:
    m = _VERSION_RE.fullmatch(raw)
    if m is None:
        return Err(
            ReleaseError(
                kind="invalid_version",
                message=f"invalid version: {raw!r} (expected {VERSION_GRAMMAR})",
                hint="Examples: 1.0.0, 1.2.3-beta, 2.0.0-alpha.1 (no leading 'v')",
            )
        )
    return Ok(
        Version(
            major=int(m.group(1)),
            minor=int(m.group(2)),
            patch=int(m.group(3)),
            label=m.group(4),
            raw=raw,
        )
    )


def numeric_encoding(version: Version) -> int:
    """Android versionCode for a version: 1.2.3 -> 10203.

    The pre-release label does not take part, so 1.0.0 and 1.0.0-beta share
    a code.
    """
    return version.major * 10000 + version.minor * 100 + version.patch


def marker_name(version: Version) -> str:
    return f"v{version.raw}"
