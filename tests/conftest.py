from __future__ import annotations

import pytest

from crontime import ExecutionTime


@pytest.fixture
def every_ten_minutes() -> ExecutionTime:
    return ExecutionTime.parse("*/10 * * * *")
