"""
Configuration Store

Reads and writes the single persisted controller configuration and applies
partial updates. Writes go through a temporary file and an atomic rename so
a concurrent reader sees either the old or the new configuration.
"""

import json
import logging
import math
import os
import tempfile
import threading
from pathlib import Path

from .exceptions import CorruptDataError, InvalidRequestError, NotFoundError
from .models import CONFIG_FIELDS, Configuration, PartialConfiguration

logger = logging.getLogger(__name__)


class ConfigStore:
    """File-backed store for the controller configuration."""

    def __init__(self, path: str | os.PathLike, default: Configuration | None = None):
        """Initialize the store.

        Args:
            path: Location of the JSON configuration file
            default: Merge base for updates when no file exists yet
        """
        self.path = Path(path)
        self.default = default
        self._lock = threading.Lock()

    def read(self) -> Configuration:
        """Load the persisted configuration.

        Raises:
            NotFoundError: If the file does not exist
            CorruptDataError: If the file is not a valid configuration
        """
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise NotFoundError(f"Configuration not found: {self.path}")
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptDataError(f"Configuration at {self.path} is not valid JSON: {e}")

        return Configuration.from_dict(data)

    def write(self, config: Configuration) -> None:
        """Persist the full configuration, replacing any previous one.

        Raises:
            InvalidRequestError: If a field is not a finite number
        """
        for name in CONFIG_FIELDS:
            value = getattr(config, name)
            if not math.isfinite(value):
                raise InvalidRequestError(name, f"Configuration field '{name}' must be finite, got {value}")

        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(config.to_dict(), f, indent=4, allow_nan=False)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise

        logger.debug(f"Wrote configuration to {self.path}")

    def update(self, partial: PartialConfiguration, require_all: bool = False) -> Configuration:
        """Overlay the supplied fields onto the stored configuration.

        Fields not supplied keep their persisted value, so an update carrying
        only target_temp leaves the PID gains untouched.

        Args:
            partial: Fields to change
            require_all: Reject the update unless every field is supplied

        Returns:
            The merged configuration that was written

        Raises:
            InvalidRequestError: If require_all is set and a field is missing
            NotFoundError: If nothing is stored and no default is configured
            CorruptDataError: If the stored configuration is malformed
        """
        if require_all:
            missing = partial.missing()
            if missing:
                raise InvalidRequestError(missing[0])

        with self._lock:
            try:
                current = self.read()
            except NotFoundError:
                if self.default is None:
                    raise
                logger.info(f"No configuration at {self.path}, starting from defaults")
                current = self.default

            merged = partial.apply_to(current)
            self.write(merged)

        return merged
