from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class ScratchFiles:
    """Temporary files created for one job.

    Acquirers register a path before they start writing to it, so a
    half-written download is still removed. Each registered path is removed
    at most once.
    """

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        self._paths: list[Path] = []

    @property
    def paths(self) -> list[Path]:
        return list(self._paths)

    def track(self, path: Path) -> Path:
        if path not in self._paths:
            self._paths.append(path)
        return path

    def release(self) -> None:
        while self._paths:
            path = self._paths.pop(0)
            logger.info("Job %s: removing temporary file %s", self.job_id, path)
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError:
                # Never overrides the job's result.
                logger.exception("Job %s: failed to remove temporary file %s", self.job_id, path)
