from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import pytest
from fakes import FIXED_NOW, FakeComicVine, standard_fake

from comic_notes.settings import Settings


@pytest.fixture
def fake() -> FakeComicVine:
    return standard_fake()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(_env_file=None, comicvine_api_key="test-key", vault_dir=tmp_path)


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW
