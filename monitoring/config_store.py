"""
============================================================================
PING MONITOR - CONFIG STORE
============================================================================
Loads and saves the AppConfig (targets, interval, timeout, history size)
as a JSON document.

- Missing file: ``load()`` returns None and the caller seeds defaults.
- Unreadable or invalid file: ConfigPersistError.
- ``save()`` writes a temporary sibling file, fsyncs it and renames it over
  the original, so a crash mid-write never leaves a truncated config.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import os
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from exceptions.base import ConfigPersistError
from monitoring.models import AppConfig
from utils.logger import get_logger


logger = get_logger("ConfigStore")


class ConfigStore:
    """JSON persistence for AppConfig."""

    def __init__(self, path: Union[Path, str]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Optional[AppConfig]:
        """
        Read the stored config.

        Raises
        ------
        ConfigPersistError
            The file exists but cannot be read or does not validate.
        """
        if not self.path.exists():
            logger.info(f"No stored config at {self.path}")
            return None

        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigPersistError(
                f"Could not read config: {e}", path=str(self.path), cause=e
            ) from e

        try:
            config = AppConfig.model_validate_json(raw)
        except ValidationError as e:
            raise ConfigPersistError(
                f"Stored config is invalid ({e.error_count()} error(s))",
                path=str(self.path),
                cause=e,
            ) from e

        logger.info(f"Loaded config from {self.path} ({len(config.targets)} targets)")
        return config

    def save(self, config: AppConfig) -> None:
        """
        Atomically write *config*.

        Raises
        ------
        ConfigPersistError
            The directory or file could not be written.
        """
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        data = config.model_dump_json(indent=2)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                pass
            raise ConfigPersistError(
                f"Could not write config: {e}", path=str(self.path), cause=e
            ) from e

        logger.info(f"Saved config to {self.path} ({len(config.targets)} targets)")
