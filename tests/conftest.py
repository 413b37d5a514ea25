"""Shared fixtures for the Wave Plan test suite."""

import logging

import pytest

from waveplan.models import Feature
from waveplan.plan_logging import observability_hooks, performance_monitor


@pytest.fixture
def make_feature():
    """Factory for features with sensible defaults."""

    def _make(feature_id, **overrides):
        data = {
            "name": feature_id,
            "priority": "P0",
            "size": "M",
            "type": "proprietary",
            "dependencies": [],
            "dependency_count": 0,
        }
        data.update(overrides)
        return Feature(id=feature_id, **data)

    return _make


@pytest.fixture(autouse=True)
def reset_observability():
    """Keep hooks, metrics and handlers from leaking between tests."""
    yield
    observability_hooks.hooks.clear()
    performance_monitor.clear()
    root_logger = logging.getLogger("waveplan")
    for handler in list(root_logger.handlers):
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.NOTSET)
