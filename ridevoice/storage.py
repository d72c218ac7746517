"""Run-scoped temporary storage for recorded clips."""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from .errors import IOFailure

logger = logging.getLogger(__name__)

ACTIVATION_CLIP = "activation-recording.wav"
COMMAND_CLIP = "command-recording.wav"


class RunStorage:
    """A private temporary directory holding the clips of a single run."""

    def __init__(self, run_id: str, base_dir: Optional[Path] = None):
        self.run_id = run_id
        self.base_dir = base_dir
        self._dir: Optional[Path] = None

    @property
    def directory(self) -> Optional[Path]:
        return self._dir

    def create(self) -> Path:
        """Create the run directory.

        Raises:
            IOFailure: If the directory cannot be created.
        """
        if self._dir is not None:
            return self._dir

        try:
            if self.base_dir is not None:
                self.base_dir.mkdir(parents=True, exist_ok=True)
            self._dir = Path(
                tempfile.mkdtemp(prefix=f"ridevoice-{self.run_id}-", dir=self.base_dir)
            )
        except OSError as e:
            raise IOFailure(f"Could not create temporary storage: {e}") from e

        logger.debug(f"Created run storage {self._dir}")
        return self._dir

    def path_for(self, name: str) -> Path:
        """Path of a clip inside the run directory."""
        return self.create() / name

    def cleanup(self) -> None:
        """Remove the run directory. Failures are logged and ignored."""
        if self._dir is None:
            return

        directory, self._dir = self._dir, None
        try:
            shutil.rmtree(directory)
            logger.debug(f"Removed run storage {directory}")
        except OSError as e:
            logger.debug(f"Could not remove run storage {directory}: {e}")
