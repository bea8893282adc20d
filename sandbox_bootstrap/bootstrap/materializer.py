from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sandbox_bootstrap.bootstrap.errors import ScaffoldWriteError
from sandbox_bootstrap.bootstrap.remote_scripts import parse_result, write_files_script
from sandbox_bootstrap.bootstrap.retry import truncate
from sandbox_bootstrap.scaffold.vite_react import scaffold_paths

if TYPE_CHECKING:  # pragma: no cover
    from sandbox_bootstrap.sandbox_backends.base import Environment, SandboxProvider
    from sandbox_bootstrap.scaffold.vite_react import ScaffoldFile

logger = logging.getLogger(__name__)


class FileMaterializer:
    """Writes the initial project tree in a single remote execution."""

    def __init__(
        self,
        provider: SandboxProvider,
        *,
        app_dir: str,
        files: list[ScaffoldFile],
        timeout_s: float = 60.0,
    ) -> None:
        self.provider = provider
        self.app_dir = app_dir
        self.files = list(files)
        self.timeout_s = timeout_s

    def write_initial_scaffold(self, environment: Environment) -> set[str]:
        expected = scaffold_paths(self.files)
        script = write_files_script(
            app_dir=self.app_dir, files=[(f.path, f.content) for f in self.files]
        )
        logger.info("Writing %d scaffold files into %s", len(expected), environment.id)

        res = self.provider.run_code(environment.handle, script, timeout_s=self.timeout_s)
        if not res.ok:
            raise ScaffoldWriteError(
                f"Scaffold write failed in sandbox {environment.id}: {truncate(res.stderr)}"
            )

        data = parse_result(res.stdout)
        written = data.get("written") if data else None
        if not isinstance(written, list):
            raise ScaffoldWriteError(
                f"Scaffold write in sandbox {environment.id} reported no result"
            )

        missing = expected - {str(p) for p in written}
        if missing:
            raise ScaffoldWriteError(
                f"Scaffold write in sandbox {environment.id} is partial; missing: {sorted(missing)}"
            )

        for path in sorted(expected):
            logger.debug("Wrote %s", path)
        return expected
