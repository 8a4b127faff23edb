"""测试公共 fixtures."""

import pytest

from tests.helpers import FakeConnectionFactory


@pytest.fixture
def factory() -> FakeConnectionFactory:
    return FakeConnectionFactory()
