import pytest

from fakes import FakeBackend, FakeLocationProvider, RecordingNotifier

from nearneeds.board.controller import BoardController
from nearneeds.config.settings import Settings, get_settings
from nearneeds.location.acquirer import LocationAcquirer


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_controller(settings, backend, notifier):
    """Build a controller over the fakes; pass a provider to control location."""

    def factory(provider: FakeLocationProvider | None = None, *, settings_override: Settings | None = None):
        return BoardController(
            settings_override or settings,
            backend=backend,
            acquirer=LocationAcquirer(provider or FakeLocationProvider()),
            notifier=notifier,
        )

    return factory
