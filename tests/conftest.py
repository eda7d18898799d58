import pytest

from copydesk.models.generation import Format, GenerationConfig, Mode, Platform, Tone
from copydesk.orchestrator.learning import InMemoryRatingRepository, LearningStore


@pytest.fixture
def write_config():
    return GenerationConfig(
        mode=Mode.WRITE, tone=Tone.MARKET_TIMING, format=Format.POST, platform=Platform.LINKEDIN
    )


@pytest.fixture
def repository():
    return InMemoryRatingRepository()


@pytest.fixture
def learning(repository):
    return LearningStore(repository)
