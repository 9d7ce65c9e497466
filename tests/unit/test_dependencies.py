"""Tests for dependency discovery and installation.

pip is never actually invoked: subprocess.run is patched.
"""

from __future__ import annotations

import subprocess
import sys
from unittest.mock import MagicMock, patch

import pytest

from src.tools.dependencies import (
    DependencyResolver,
    PackageInstaller,
    is_importable,
    scan_imports,
)
from src.tools.errors import DependencyInstallError, ErrorCode


class TestScanImports:
    """Line-oriented scan of unindented imports."""

    def test_plain_and_from_imports(self) -> None:
        source = "import requests\nfrom bs4 import BeautifulSoup\n"
        assert scan_imports(source) == ["requests", "bs4"]

    def test_dotted_and_aliased(self) -> None:
        source = "import os.path as osp, numpy as np\nfrom google.cloud import storage\n"
        assert scan_imports(source) == ["os", "numpy", "google"]

    def test_duplicates_dropped_in_order(self) -> None:
        source = "import json\nfrom json import loads\nimport yaml\nimport json\n"
        assert scan_imports(source) == ["json", "yaml"]

    def test_indented_imports_ignored(self) -> None:
        """Only column-0 statements count."""
        source = "def f():\n    import requests\n    return requests\n"
        assert scan_imports(source) == []

    def test_relative_imports_ignored(self) -> None:
        source = "from . import helpers\nfrom .util import x\n"
        assert scan_imports(source) == []

    def test_no_imports(self) -> None:
        assert scan_imports("functionName = 'f'\n") == []


class TestIsImportable:
    def test_stdlib_module(self) -> None:
        assert is_importable("json") is True

    def test_missing_module(self) -> None:
        assert is_importable("surely_not_a_real_module_xyz") is False


def _completed(returncode: int = 0, stderr: str = "") -> MagicMock:
    result = MagicMock()
    result.returncode = returncode
    result.stderr = stderr
    result.stdout = ""
    return result


class TestPackageInstaller:
    """pip invocation and its failure modes."""

    def test_install_uses_alias(self) -> None:
        installer = PackageInstaller(aliases={"bs4": "beautifulsoup4"})
        with patch("src.tools.dependencies.subprocess.run", return_value=_completed()) as run:
            assert installer.install("bs4") == "beautifulsoup4"
        args = run.call_args[0][0]
        assert args[:4] == [sys.executable, "-m", "pip", "install"]
        assert args[-1] == "beautifulsoup4"

    def test_blocked_package(self) -> None:
        installer = PackageInstaller(blocked=["docker"])
        with patch("src.tools.dependencies.subprocess.run") as run:
            with pytest.raises(DependencyInstallError, match="blocked"):
                installer.install("Docker")
        run.assert_not_called()

    def test_invalid_package_name(self) -> None:
        installer = PackageInstaller()
        with patch("src.tools.dependencies.subprocess.run") as run:
            with pytest.raises(DependencyInstallError, match="invalid package name"):
                installer.install("evil; rm -rf /")
        run.assert_not_called()

    def test_disabled_installs(self) -> None:
        installer = PackageInstaller(enabled=False)
        with pytest.raises(DependencyInstallError) as exc_info:
            installer.install("requests")
        assert exc_info.value.code == ErrorCode.DEPENDENCY_INSTALL_FAILED
        assert exc_info.value.package == "requests"

    def test_pip_failure_truncates_stderr(self) -> None:
        installer = PackageInstaller()
        stderr = "E" * 500
        with patch("src.tools.dependencies.subprocess.run", return_value=_completed(1, stderr)):
            with pytest.raises(DependencyInstallError) as exc_info:
                installer.install("nonexistentpkg")
        assert exc_info.value.reason.endswith("...")
        assert len(exc_info.value.reason) < 300

    def test_timeout(self) -> None:
        installer = PackageInstaller(timeout=5)
        error = subprocess.TimeoutExpired(cmd="pip", timeout=5)
        with patch("src.tools.dependencies.subprocess.run", side_effect=error):
            with pytest.raises(DependencyInstallError, match="timed out"):
                installer.install("slowpkg")


class TestDependencyResolver:
    """Only missing third-party imports are installed."""

    def test_standard_and_local_modules_excluded(self) -> None:
        resolver = DependencyResolver(PackageInstaller(), local_packages={"src"})
        source = "import os\nimport json\nfrom src.tools import FunctionAuthor\nimport requests\n"
        assert resolver.candidates(source) == ["requests"]

    def test_installs_only_missing(self) -> None:
        installer = MagicMock(spec=PackageInstaller)
        installer.install.side_effect = lambda module: module
        resolver = DependencyResolver(installer, probe=lambda module: module == "present")

        installed = resolver.ensure("import present\nimport missing\n")

        assert installed == ["missing"]
        installer.install.assert_called_once_with("missing")

    def test_nothing_missing(self) -> None:
        installer = MagicMock(spec=PackageInstaller)
        resolver = DependencyResolver(installer, probe=lambda module: True)
        assert resolver.ensure("import requests\n") == []
        installer.install.assert_not_called()

    def test_first_failure_aborts(self) -> None:
        installer = MagicMock(spec=PackageInstaller)
        installer.install.side_effect = DependencyInstallError("a", "boom")
        resolver = DependencyResolver(installer, probe=lambda module: False)
        with pytest.raises(DependencyInstallError):
            resolver.ensure("import a\nimport b\n")
        assert installer.install.call_count == 1
