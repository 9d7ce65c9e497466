"""Application context - owns the registry and every collaborator.

One AppContext per process (or per test). Nothing here is a module-level
singleton; callers pass the context or its parts around explicitly.

Usage:
    from src.app import AppContext

    app = AppContext.from_config()
    app.load_functions("alice")
    reply = app.coordinator.handle_user_message("alice", session_id, "hi")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .assistant.coordinator import CoordinatorSettings, RunCoordinator, UIActionHandler
from .assistant.event_log import EventLogger
from .assistant.service import AssistantStore, RunService
from .assistant.sessions import SessionManager
from .config_schema import AppConfig
from .tools.author import FunctionAuthor
from .tools.dependencies import DependencyResolver, PackageInstaller
from .tools.loader import AUTHOR_GLOBAL, FunctionLoader
from .tools.registry import FunctionRegistry
from .tools.schema import FunctionDescriptor


@dataclass
class AppContext:
    """Everything needed to run conversations for any number of owners."""

    registry: FunctionRegistry
    loader: FunctionLoader
    author: FunctionAuthor
    sessions: SessionManager
    coordinator: RunCoordinator
    assistants: AssistantStore
    run_service: RunService
    event_log: EventLogger

    @classmethod
    def build(
        cls,
        config: AppConfig,
        run_service: RunService,
        assistants: AssistantStore,
        functions_dir: Path | None = None,
        on_ui_action: UIActionHandler | None = None,
    ) -> "AppContext":
        """Wire an application from a validated config and service objects."""
        directory = functions_dir or Path.cwd() / config.functions.directory
        installer = PackageInstaller(
            aliases=config.libraries.aliases,
            blocked=config.libraries.blocked,
            timeout=config.libraries.install_timeout_seconds,
            enabled=config.libraries.install_missing,
        )
        resolver = DependencyResolver(installer, local_packages=config.functions.local_packages)
        registry = FunctionRegistry()
        author = FunctionAuthor(directory, protected=config.functions.protected)
        loader = FunctionLoader(
            directory, resolver, catalog=assistants, injected={AUTHOR_GLOBAL: author}
        )
        sessions = SessionManager(run_service)
        event_log = EventLogger(config.logging.event_log)
        settings = CoordinatorSettings.from_config(config)
        coordinator = RunCoordinator(
            run_service,
            assistants,
            registry,
            loader,
            sessions,
            settings=settings,
            event_log=event_log,
            on_ui_action=on_ui_action,
        )
        return cls(
            registry=registry,
            loader=loader,
            author=author,
            sessions=sessions,
            coordinator=coordinator,
            assistants=assistants,
            run_service=run_service,
            event_log=event_log,
        )

    @classmethod
    def from_config(cls, on_ui_action: UIActionHandler | None = None) -> "AppContext":
        """Build against the OpenAI Assistants API using the loaded config."""
        from .assistant.openai_service import OpenAIAssistantStore, OpenAIRunService, create_client
        from .config import get_validated_config

        config = get_validated_config()
        client = create_client(config.openai.api_key_env, config.openai.base_url)
        return cls.build(
            config,
            run_service=OpenAIRunService(client),
            assistants=OpenAIAssistantStore(
                client, config.openai.default_model, config.openai.list_limit
            ),
            on_ui_action=on_ui_action,
        )

    def load_functions(self, owner_key: str) -> list[str]:
        """Bulk load (or reload) every function declared for the owner."""
        names = self.loader.reload(owner_key, self.registry)
        self.event_log.log("functions_loaded", {"owner_key": owner_key, "functions": names})
        return names

    def add_function_from_file(self, owner_key: str, path: Path) -> FunctionDescriptor:
        """Admin flow: load a module from any path, register it and publish it."""
        with self.registry.owner_lock(owner_key):
            descriptor = self.loader.load_path(path)
            self.registry.add(owner_key, descriptor)
        self.assistants.add_function(owner_key, descriptor.schema.to_dict())
        self.event_log.log("function_added", {"owner_key": owner_key, "function": descriptor.name})
        return descriptor

    def remove_function(self, owner_key: str, name: str) -> bool:
        """Withdraw a function from the assistant and the registry."""
        removed = self.assistants.remove_function(owner_key, name)
        self.registry.unregister(owner_key, name)
        self.event_log.log("function_removed", {"owner_key": owner_key, "function": name})
        return removed
