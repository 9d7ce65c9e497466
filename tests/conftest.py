"""Pytest fixtures for assistant function runner tests.

Everything remote is faked (tests/testing_utils.py); function modules are
written into a per-test temporary functions directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from src.assistant.coordinator import CoordinatorSettings, RunCoordinator
from src.assistant.event_log import EventLogger
from src.assistant.sessions import SessionManager
from src.config import reset_config
from src.tools.dependencies import DependencyResolver, PackageInstaller
from src.tools.author import FunctionAuthor
from src.tools.loader import AUTHOR_GLOBAL, FunctionLoader
from src.tools.registry import FunctionRegistry
from tests.testing_utils import FakeAssistantStore, FakeRunService, VirtualClock


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "external: mark test as requiring external services (real API calls)"
    )


@pytest.fixture(autouse=True)
def fresh_config() -> Iterator[None]:
    """Every test starts and ends without a cached config."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def functions_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "functions"
    directory.mkdir()
    return directory


@pytest.fixture
def registry() -> FunctionRegistry:
    return FunctionRegistry()


@pytest.fixture
def resolver() -> DependencyResolver:
    """Resolver that never installs anything."""
    return DependencyResolver(PackageInstaller(enabled=False), local_packages={"src"})


@pytest.fixture
def assistants() -> FakeAssistantStore:
    store = FakeAssistantStore()
    store.create_or_find("alice")
    return store


@pytest.fixture
def run_service() -> FakeRunService:
    return FakeRunService()


@pytest.fixture
def author(functions_dir: Path) -> FunctionAuthor:
    return FunctionAuthor(functions_dir, protected=["createNewFunction"])


@pytest.fixture
def loader(
    functions_dir: Path,
    resolver: DependencyResolver,
    assistants: FakeAssistantStore,
    author: FunctionAuthor,
) -> FunctionLoader:
    return FunctionLoader(
        functions_dir, resolver, catalog=assistants, injected={AUTHOR_GLOBAL: author}
    )


@pytest.fixture
def sessions(run_service: FakeRunService) -> SessionManager:
    return SessionManager(run_service)


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def event_log() -> EventLogger:
    return EventLogger()


@pytest.fixture
def settings() -> CoordinatorSettings:
    return CoordinatorSettings(poll_interval=0.5, max_wait=5.0, settle_delay=0.0)


@pytest.fixture
def coordinator(
    run_service: FakeRunService,
    assistants: FakeAssistantStore,
    registry: FunctionRegistry,
    loader: FunctionLoader,
    sessions: SessionManager,
    settings: CoordinatorSettings,
    event_log: EventLogger,
    clock: VirtualClock,
) -> RunCoordinator:
    return RunCoordinator(
        run_service,
        assistants,
        registry,
        loader,
        sessions,
        settings=settings,
        event_log=event_log,
        sleep=clock.sleep,
        clock=clock.time,
    )
