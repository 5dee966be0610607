# WORKFLOW: Shared fixtures for the STOP package transformer test suite.
# Used by: All tests
# Fixtures:
# 1. source_entries - Entry name -> content mapping of a complete sample source package
# 2. build_zip - Factory writing a ZIP archive into tmp_path (entries kept in insertion order)
# 3. source_zip - The sample package written to disk
# 4. clock - FixedClock on Friday 2025-03-14 10:30:00
#
# Fixture flow: Sample XML documents -> ZIP in tmp_path -> Service / pipeline under test

from datetime import datetime

import pytest

from core.clock import FixedClock
from tests.samples import sample_entries, write_zip


@pytest.fixture
def source_entries():
    return sample_entries()


@pytest.fixture
def build_zip(tmp_path):
    def _build(entries: dict, name: str = "source.zip") -> str:
        return write_zip(tmp_path / name, entries)
    return _build


@pytest.fixture
def source_zip(build_zip, source_entries):
    return build_zip(source_entries)


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 3, 14, 10, 30, 0))
