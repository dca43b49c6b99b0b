from __future__ import annotations

from pathlib import Path

import pytest

from nbrelease.test._helpers import Project, make_project


@pytest.fixture
def project(tmp_path: Path) -> Project:
    """A checkout on main with both descriptors committed and pushed to a bare remote."""
    return make_project(tmp_path)
