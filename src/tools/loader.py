"""Dynamic Loader - turns a function name into a runnable descriptor.

Pipeline for one function:
1. Resolve <functions_dir>/<name>.py (FunctionNotFoundError if absent)
2. Scan its top-level imports and install what is missing
3. Compile and execute the current file text as a fresh module, with any
   injected globals (e.g. function_author) already in its namespace
4. Check the export contract (InvalidModuleError on violation)
5. Return a FunctionDescriptor for registration

Fresh imports never go through importlib's module cache or the bytecode
cache: the file text is read and compiled on every load under a unique
module name, so a function rewritten on disk is picked up immediately.

NOTE: This is NOT a sandbox. Loaded modules run with the full privileges
of the process, exactly like any other import.

Export contract (names are fixed):
    functionName = "echoTest"                      # str
    functionOptions = {"type": "function", ...}    # tool schema
    def echoTest(**kwargs): ...                    # callable under functionName
"""

from __future__ import annotations

import itertools
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Mapping, Protocol

from pydantic import ValidationError

from .dependencies import DependencyResolver
from .errors import FunctionNotFoundError, InvalidModuleError, ToolkitError
from .registry import FunctionRegistry
from .schema import FunctionDescriptor, ToolSchema

logger = logging.getLogger(__name__)

NAME_EXPORT = "functionName"
SCHEMA_EXPORT = "functionOptions"
MODULE_SUFFIX = ".py"
_MODULE_PREFIX = "_loaded_function"
# Global through which function modules reach the FunctionAuthor
AUTHOR_GLOBAL = "function_author"


class FunctionCatalog(Protocol):
    """Anything that can list the tool names declared for an owner."""

    def list_function_names(self, owner_key: str) -> list[str]: ...


class FunctionLoader:
    """Loads function modules from a functions directory."""

    def __init__(
        self,
        functions_dir: Path,
        resolver: DependencyResolver,
        catalog: FunctionCatalog | None = None,
        injected: Mapping[str, Any] | None = None,
    ) -> None:
        self.functions_dir = Path(functions_dir)
        self.resolver = resolver
        self.catalog = catalog
        # Names placed in every module's globals before its body runs
        self.injected = dict(injected or {})
        self._generation = itertools.count(1)
        # function name -> sys.modules key of its latest generation
        self._module_keys: dict[str, str] = {}

    def module_path(self, name: str) -> Path:
        """Where the module for `name` is expected to live."""
        return self.functions_dir / f"{name}{MODULE_SUFFIX}"

    def load(self, name: str) -> FunctionDescriptor:
        """Load the function declared under `name`.

        Raises:
            FunctionNotFoundError: No module file for `name`.
            DependencyInstallError: A dependency could not be installed.
            InvalidModuleError: The module breaks the export contract.
        """
        path = self.module_path(name)
        if not path.is_file():
            raise FunctionNotFoundError(name, f"Function file {path} not found")
        descriptor = self.load_path(path)
        if descriptor.name != name:
            raise InvalidModuleError(
                f"{path} exports functionName '{descriptor.name}', expected '{name}'"
            )
        return descriptor

    def load_path(self, path: Path) -> FunctionDescriptor:
        """Load a function module from an arbitrary file."""
        path = Path(path).resolve()
        if not path.is_file():
            raise FunctionNotFoundError(path.stem, f"Function file {path} not found")

        source = path.read_text(encoding="utf-8")
        installed = self.resolver.ensure(source)
        if installed:
            logger.info("Installed %s for %s", ", ".join(installed), path.name)

        module = self._execute(path, source)
        return self._validate(module, path)

    def load_all(self, owner_key: str) -> list[FunctionDescriptor]:
        """Load every function the owner's assistant declares.

        A failing function is logged and skipped; the rest still load.
        """
        if self.catalog is None:
            raise RuntimeError("load_all requires a function catalog")
        if not self.functions_dir.is_dir():
            logger.error("Functions directory %s not found", self.functions_dir)
            return []

        descriptors: list[FunctionDescriptor] = []
        for name in self.catalog.list_function_names(owner_key):
            try:
                descriptors.append(self.load(name))
            except ToolkitError as e:
                logger.error("Skipping function %s for owner %s: %s", name, owner_key, e)
        return descriptors

    def reload(self, owner_key: str, registry: FunctionRegistry) -> list[str]:
        """Rebuild the owner's registry map from disk.

        The new map is built completely before it replaces the old one.
        Returns the names now registered.
        """
        with registry.owner_lock(owner_key):
            descriptors = self.load_all(owner_key)
            registry.replace(owner_key, descriptors)
        return [d.name for d in descriptors]

    def _execute(self, path: Path, source: str) -> ModuleType:
        """Compile and run module text under a never-before-used name."""
        key = f"{_MODULE_PREFIX}_{path.stem}_{next(self._generation)}"
        module = ModuleType(key)
        module.__file__ = str(path)

        try:
            compiled = compile(source, str(path), "exec")
        except SyntaxError as e:
            raise InvalidModuleError(f"Syntax error in {path}: {e}") from e

        # Registered while the body runs so dataclasses/typing can resolve it
        sys.modules[key] = module
        module.__dict__.update(self.injected)
        try:
            exec(compiled, module.__dict__)
        except (Exception, SystemExit) as e:  # module code can raise anything
            sys.modules.pop(key, None)
            raise InvalidModuleError(
                f"Importing {path} failed: {type(e).__name__}: {e}"
            ) from e

        previous = self._module_keys.get(path.stem)
        if previous is not None:
            sys.modules.pop(previous, None)
        self._module_keys[path.stem] = key
        return module

    def _validate(self, module: ModuleType, path: Path) -> FunctionDescriptor:
        name: Any = getattr(module, NAME_EXPORT, None)
        if not isinstance(name, str) or not name:
            raise InvalidModuleError(f"{path} does not export a string '{NAME_EXPORT}'")

        options: Any = getattr(module, SCHEMA_EXPORT, None)
        if not isinstance(options, dict):
            raise InvalidModuleError(f"{path} does not export a '{SCHEMA_EXPORT}' object")
        try:
            schema = ToolSchema.model_validate(options)
        except ValidationError as e:
            raise InvalidModuleError(f"Invalid {SCHEMA_EXPORT} in {path}: {e}") from e
        if schema.name != name:
            raise InvalidModuleError(
                f"Schema name '{schema.name}' in {path} does not match '{name}'"
            )

        func = getattr(module, name, None)
        if not callable(func):
            raise InvalidModuleError(
                f"The variable {NAME_EXPORT} in the file {path} is not a function."
            )

        return FunctionDescriptor(name=name, schema=schema, func=func, source_path=path)
