"""
Shared fixtures for the Threadloom test suite.
"""

import json
import random
from typing import Any, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from threadloom.config import Settings
from threadloom.engine import (
    ConsequenceEngine,
    RelationshipEngine,
    SynchronizationManager,
    TemporalEngine,
)
from threadloom.providers.base import BaseProvider, ProviderResponse
from threadloom.providers.generation import ContentGenerator
from threadloom.schemas import WorldModel


class FixedRandom(random.Random):
    """Random source whose random() always returns the same value"""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


def mock_provider(replies: Optional[List[Any]] = None, error: Optional[Exception] = None):
    """Provider double whose chat() returns the given replies in order"""
    provider = MagicMock(spec=BaseProvider)
    if error is not None:
        provider.chat = AsyncMock(side_effect=error)
    else:
        provider.chat = AsyncMock(
            side_effect=[
                ProviderResponse(
                    content=r if isinstance(r, str) else json.dumps(r), model="mock"
                )
                for r in replies or []
            ]
        )
    return provider


@pytest.fixture
def config():
    """Settings with generation disabled and spawning switched off"""
    return Settings(model_provider="none", spawn_probability=0.0)


@pytest.fixture
def spawning_config():
    """Settings where every eligible child spawns"""
    return Settings(model_provider="none", spawn_probability=1.0)


@pytest.fixture
def world():
    return WorldModel(current_turn=1)


@pytest.fixture
def consequence_engine(config):
    return ConsequenceEngine(config=config, rng=FixedRandom(0.99))


@pytest.fixture
def relationship_engine(config):
    return RelationshipEngine(config=config)


@pytest.fixture
def temporal_engine(config):
    return TemporalEngine(config=config)


@pytest.fixture
def manager(config):
    return SynchronizationManager(config=config, rng=FixedRandom(0.99))


@pytest.fixture
def failing_generator(config):
    """Generator whose provider always errors"""
    return ContentGenerator(
        provider=mock_provider(error=RuntimeError("connection refused")), config=config
    )
