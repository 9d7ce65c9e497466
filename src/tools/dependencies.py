"""Dependency discovery and installation for function modules.

Discovery is a line-oriented scan of unindented import statements; nothing
is executed. Each candidate is probed with importlib and, when missing,
installed with pip. Installs run one at a time and block the caller.

Usage:
    installer = PackageInstaller(aliases={"bs4": "beautifulsoup4"})
    resolver = DependencyResolver(installer, local_packages={"src"})
    installed = resolver.ensure(source_text)
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
import re
import subprocess
import sys
from typing import Callable, Iterable

from .errors import DependencyInstallError

logger = logging.getLogger(__name__)

# `import a`, `import a.b as c, d` and `from a.b import x` at column 0.
# Relative imports (`from .x import y`) never match.
_IMPORT_RE = re.compile(r"^import\s+(?P<names>[A-Za-z_][\w.]*(?:\s+as\s+\w+)?(?:\s*,\s*[A-Za-z_][\w.]*(?:\s+as\s+\w+)?)*)")
_FROM_RE = re.compile(r"^from\s+(?P<module>[A-Za-z_][\w.]*)\s+import\b")

# Allow: letters, numbers, hyphens, underscores, dots, brackets for extras
_PACKAGE_NAME_RE = re.compile(r"^[a-zA-Z0-9_\-.\[\]]+$")

STANDARD_MODULES: frozenset[str] = frozenset(sys.stdlib_module_names) | frozenset(
    sys.builtin_module_names
) | {"__future__"}


def scan_imports(source: str) -> list[str]:
    """Top-level package names imported by unindented import lines.

    Order of first appearance is kept; duplicates are dropped.
    """
    found: list[str] = []
    for line in source.splitlines():
        match = _FROM_RE.match(line)
        if match:
            modules = [match.group("module")]
        else:
            match = _IMPORT_RE.match(line)
            if not match:
                continue
            modules = [part.split()[0] for part in match.group("names").split(",")]
        for module in modules:
            top = module.strip().split(".")[0]
            if top and top not in found:
                found.append(top)
    return found


def is_importable(module: str) -> bool:
    """Resolution probe: can `module` be imported in this interpreter?"""
    try:
        return importlib.util.find_spec(module) is not None
    except (ImportError, ValueError):
        return False


class PackageInstaller:
    """Installs distributions with pip into the running interpreter.

    Every failure raises DependencyInstallError; there is no retry.
    """

    def __init__(
        self,
        aliases: dict[str, str] | None = None,
        blocked: Iterable[str] = (),
        timeout: int = 120,
        enabled: bool = True,
    ) -> None:
        self.aliases = dict(aliases or {})
        self.blocked = {b.lower() for b in blocked}
        self.timeout = timeout
        self.enabled = enabled

    def distribution_for(self, module: str) -> str:
        """Distribution name to install for an import name."""
        return self.aliases.get(module, module)

    def install(self, module: str) -> str:
        """Install the distribution providing `module`.

        Returns:
            The distribution name that was installed.

        Raises:
            DependencyInstallError: On invalid/blocked names, disabled
                installs, pip failure or timeout.
        """
        package = self.distribution_for(module)

        # Validate package name format (prevent command injection)
        if not _PACKAGE_NAME_RE.match(package):
            raise DependencyInstallError(package, "invalid package name")
        if package.lower() in self.blocked:
            raise DependencyInstallError(package, "package is blocked")
        if not self.enabled:
            raise DependencyInstallError(package, "installation of missing libraries is disabled")

        logger.info("Installing missing library: %s", package)
        try:
            result = subprocess.run(
                [sys.executable, "-m", "pip", "install", "--break-system-packages", "-q", package],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise DependencyInstallError(
                package, f"installation timed out (>{self.timeout}s)"
            ) from e
        except OSError as e:
            raise DependencyInstallError(package, str(e)) from e

        if result.returncode != 0:
            error_msg = result.stderr.strip() or result.stdout.strip() or "Unknown pip error"
            if len(error_msg) > 200:
                error_msg = error_msg[:200] + "..."
            raise DependencyInstallError(package, f"pip install failed: {error_msg}")

        importlib.invalidate_caches()
        return package


class DependencyResolver:
    """Finds the third-party imports of a module and makes them available."""

    def __init__(
        self,
        installer: PackageInstaller,
        local_packages: Iterable[str] = (),
        probe: Callable[[str], bool] = is_importable,
    ) -> None:
        self.installer = installer
        self.excluded = STANDARD_MODULES | set(local_packages)
        self.probe = probe

    def candidates(self, source: str) -> list[str]:
        """Imported top-level names that are not standard or local."""
        return [m for m in scan_imports(source) if m not in self.excluded]

    def ensure(self, source: str) -> list[str]:
        """Install every missing dependency of `source`, sequentially.

        Returns:
            Distribution names that were installed (empty if none were missing).

        Raises:
            DependencyInstallError: The first install that fails aborts the rest.
        """
        installed: list[str] = []
        for module in self.candidates(source):
            if self.probe(module):
                continue
            installed.append(self.installer.install(module))
        return installed
