"""Function Author - persists new function source for self-extension.

The source is written verbatim; nothing is wrapped or validated here. The
loader checks the export contract when the module is activated.

Writes are atomic (temp file + rename), so a concurrent load never sees a
half-written module. Overwriting an existing function is allowed (last
write wins) except for protected names.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable

from .errors import CreationFailedError
from .loader import MODULE_SUFFIX

logger = logging.getLogger(__name__)


class FunctionAuthor:
    """Writes function modules into the functions directory."""

    def __init__(self, functions_dir: Path, protected: Iterable[str] = ()) -> None:
        self.functions_dir = Path(functions_dir)
        self.protected = set(protected)

    def create(self, owner_key: str | None, name: str, source_code: str) -> Path:
        """Write `source_code` as the module for `name`.

        Args:
            owner_key: Owner on whose behalf the function is created (for logs)
            name: Function name; becomes the file stem
            source_code: Entire module text

        Returns:
            Resolved path of the written module.

        Raises:
            CreationFailedError: Invalid/protected name or a failed write.
        """
        if not name.isidentifier():
            raise CreationFailedError(f"Invalid function name: {name!r}")
        if name in self.protected:
            raise CreationFailedError(f"Function '{name}' is protected and cannot be overwritten")

        try:
            self.functions_dir.mkdir(parents=True, exist_ok=True)
            path = (self.functions_dir / f"{name}{MODULE_SUFFIX}").resolve()
            if path.exists():
                logger.warning("Overwriting existing function %s at %s", name, path)

            fd, tmp_name = tempfile.mkstemp(
                dir=self.functions_dir, prefix=f".{name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(source_code)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error("Error creating new function %s: %s", name, e)
            raise CreationFailedError("Failed to create new function") from e

        logger.info("Function %s created by %s at %s", name, owner_key or "unknown", path)
        return path
