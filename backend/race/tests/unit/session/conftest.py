import pytest

from race.logic.settings import RaceSettings
from race.session.session import RaceSession
from race.tests.mocks import FixedParagraphProvider


@pytest.fixture
def provider():
    return FixedParagraphProvider("the quick brown fox jumps")


@pytest.fixture
def emptied() -> list[RaceSession]:
    return []


@pytest.fixture
def session(provider, emptied):
    return RaceSession(
        "room1",
        paragraph_provider=provider,
        settings=RaceSettings(round_duration_seconds=60),
        on_empty=emptied.append,
    )
