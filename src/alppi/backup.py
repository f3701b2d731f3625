from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

from alppi.utils.files import copy_file, make_dirs, replace_file
from alppi.utils.logging import logger

TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S%f"


class BackupStore:
  """Creates timestamped copies of files before they get modified (named <file>.bak.<timestamp>)
  and restores the most recent one. Backups are never modified or deleted by alppi."""
  backup_dir: Path | None

  def __init__(self, backup_dir: str | Path | None = None):
    self.backup_dir = Path(backup_dir) if backup_dir is not None else None

  def backup(self, path: str | Path) -> Path:
    source = Path(path)
    if not source.is_file():
      raise FileNotFoundError(f"cannot back up {source}: file not found")
    directory = self.directory_for(source)
    make_dirs(directory)
    timestamp = datetime.now()
    target = directory / f"{source.name}.bak.{timestamp.strftime(TIMESTAMP_FORMAT)}"
    latest = self.latest(source)
    if latest is not None and self.timestamp_of(latest) >= timestamp:
      # clock went backwards or two backups within the same microsecond; keep ordering strict
      target = directory / f"{source.name}.bak.{self.next_timestamp(latest)}"
    copy_file(source, target)
    logger.info(f"backed up {source} to {target}")
    return target

  def backups(self, path: str | Path) -> list[Path]:
    source = Path(path)
    directory = self.directory_for(source)
    if not directory.is_dir():
      return []
    prefix = f"{source.name}.bak."
    candidates = [
      entry for entry in directory.iterdir()
      if entry.name.startswith(prefix) and self.parse_timestamp(entry.name[len(prefix):]) is not None
    ]
    return sorted(candidates, key = self.timestamp_of)

  def latest(self, path: str | Path) -> Path | None:
    backups = self.backups(path)
    return backups[-1] if backups else None

  def restore_latest(self, path: str | Path) -> bool:
    target = Path(path)
    latest = self.latest(target)
    if latest is None:
      logger.warn(f"no backup found, cannot restore {target}")
      return False
    replace_file(latest, target)
    logger.info(f"restored {target} from {latest}")
    return True

  def directory_for(self, source: Path) -> Path:
    return self.backup_dir if self.backup_dir is not None else source.parent

  @classmethod
  def timestamp_of(cls, backup: Path) -> datetime:
    timestamp = cls.parse_timestamp(backup.name.rsplit(".bak.", 1)[-1])
    assert timestamp is not None, f"not a backup file: {backup}"
    return timestamp

  @staticmethod
  def parse_timestamp(value: str) -> datetime | None:
    try:
      return datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
      return None

  @classmethod
  def next_timestamp(cls, backup: Path) -> str:
    return (cls.timestamp_of(backup) + timedelta(microseconds = 1)).strftime(TIMESTAMP_FORMAT)
