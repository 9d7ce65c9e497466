"""Function Registry - per-owner map of callable tools

Every lookup is partitioned by owner key; nothing registered for one owner
is visible to another. The registry has no persistence and is rebuilt from
the loader on demand.

Usage:
    registry = FunctionRegistry()
    registry.register("alice", "getCurrentDateString", func)
    func = registry.lookup("alice", "getCurrentDateString")

    # Full reload: build the new map first, then swap it in
    registry.replace("alice", loader.load_all("alice"))
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable

from .errors import FunctionNotFoundError
from .schema import FunctionDescriptor, FunctionSpec, ToolSchema

logger = logging.getLogger(__name__)


class FunctionRegistry:
    """In-memory registry of function descriptors keyed by (owner, name).

    Thread-safe: the owner maps are guarded by a single lock. Loads for one
    owner are serialized with owner_lock(), since they share the on-disk
    functions directory.
    """

    def __init__(self) -> None:
        self._functions: dict[str, dict[str, FunctionDescriptor]] = {}
        self._lock = threading.Lock()
        self._owner_locks: dict[str, threading.RLock] = {}

    def register(
        self,
        owner_key: str,
        name: str,
        func: Callable[..., Any],
        schema: ToolSchema | None = None,
    ) -> FunctionDescriptor:
        """Upsert a callable under (owner_key, name). Last write wins.

        When no schema is given a minimal one is synthesized so the entry
        still satisfies the name invariant.
        """
        if schema is None:
            schema = ToolSchema(function=FunctionSpec(name=name))
        descriptor = FunctionDescriptor(name=name, schema=schema, func=func)
        return self.add(owner_key, descriptor)

    def add(self, owner_key: str, descriptor: FunctionDescriptor) -> FunctionDescriptor:
        """Upsert a loaded descriptor."""
        with self._lock:
            functions = self._functions.setdefault(owner_key, {})
            replaced = descriptor.name in functions
            functions[descriptor.name] = descriptor
        logger.debug(
            "%s function %s for owner %s",
            "Replaced" if replaced else "Registered",
            descriptor.name,
            owner_key,
        )
        return descriptor

    def lookup(self, owner_key: str, name: str) -> Callable[..., Any] | None:
        """Return the callable for (owner_key, name), or None."""
        with self._lock:
            descriptor = self._functions.get(owner_key, {}).get(name)
        return descriptor.func if descriptor is not None else None

    def get(self, owner_key: str, name: str) -> FunctionDescriptor:
        """Return the descriptor for (owner_key, name).

        Raises:
            FunctionNotFoundError: If nothing is registered under that name.
        """
        with self._lock:
            descriptor = self._functions.get(owner_key, {}).get(name)
        if descriptor is None:
            raise FunctionNotFoundError(name)
        return descriptor

    def unregister(self, owner_key: str, name: str) -> bool:
        """Drop one function. Returns True if it was registered."""
        with self._lock:
            functions = self._functions.get(owner_key)
            if functions is None or name not in functions:
                return False
            del functions[name]
        return True

    def clear(self, owner_key: str) -> None:
        """Drop the owner's entire map."""
        with self._lock:
            self._functions.pop(owner_key, None)

    def replace(self, owner_key: str, descriptors: Iterable[FunctionDescriptor]) -> None:
        """Atomically swap in a freshly loaded map for the owner."""
        fresh = {d.name: d for d in descriptors}
        with self._lock:
            self._functions[owner_key] = fresh
        logger.info("Registry for owner %s now holds %d function(s)", owner_key, len(fresh))

    def names(self, owner_key: str) -> list[str]:
        """Registered function names for an owner, sorted."""
        with self._lock:
            return sorted(self._functions.get(owner_key, {}))

    def snapshot(self, owner_key: str) -> dict[str, FunctionDescriptor]:
        """Shallow copy of the owner's map."""
        with self._lock:
            return dict(self._functions.get(owner_key, {}))

    def owners(self) -> list[str]:
        with self._lock:
            return sorted(self._functions)

    def owner_lock(self, owner_key: str) -> threading.RLock:
        """Re-entrant lock serializing loads for one owner."""
        with self._lock:
            lock = self._owner_locks.get(owner_key)
            if lock is None:
                lock = threading.RLock()
                self._owner_locks[owner_key] = lock
            return lock
