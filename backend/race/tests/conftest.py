import pytest

from race.logic.settings import RaceSettings
from race.messaging.router import MessageRouter
from race.server.app import create_app
from race.server.settings import RaceServerSettings
from race.session.manager import SessionManager
from race.tests.mocks import FixedParagraphProvider, MockConnection


@pytest.fixture
def paragraph_provider():
    return FixedParagraphProvider()


@pytest.fixture
def race_settings():
    return RaceSettings(round_duration_seconds=60)


@pytest.fixture
def session_manager(paragraph_provider, race_settings):
    return SessionManager(paragraph_provider, settings=race_settings, max_rooms=10)


@pytest.fixture
def message_router(session_manager):
    return MessageRouter(session_manager)


@pytest.fixture
def mock_connection():
    return MockConnection()


@pytest.fixture
def server_settings():
    return RaceServerSettings(max_rooms=10, cors_origins=["http://localhost:3000"], offline_paragraphs=True)


@pytest.fixture
def app(server_settings, session_manager, message_router):
    return create_app(
        settings=server_settings,
        session_manager=session_manager,
        message_router=message_router,
    )
