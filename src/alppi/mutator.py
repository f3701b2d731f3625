from __future__ import annotations

import stat
from pathlib import Path

from alppi.backup import BackupStore
from alppi.errors import AlppiError, MutationError, ValidationError
from alppi.pacman_conf import ConfigDocument, ConfigEdit
from alppi.utils.error_handling import scratch_files
from alppi.utils.files import replace_file, scratch_file
from alppi.utils.logging import logger
from alppi.validator import Validator

# pacman reads its configuration as bytes; undecodable bytes (e.g. Latin-1 comments) survive the round trip
ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"


class ConfigMutator:
  """The only way alppi modifies pacman.conf: back up, write the edited copy to a scratch file,
  let pacman-conf validate it, stage it next to the original and atomically rename it over the
  original. Readers of the file either see the old or the new content, never anything in between.
  When the configuration directory is not writable by alppi itself, staging and renaming go
  through sudo."""
  backups: BackupStore
  validator: Validator
  dry_run: bool

  def __init__(self, backups: BackupStore, validator: Validator, dry_run: bool = False):
    self.backups = backups
    self.validator = validator
    self.dry_run = dry_run

  def apply_edit(self, path: str | Path, edit: ConfigEdit) -> bool:
    """Returns True if the file was changed, False if the edit was a no-op."""
    target = Path(path)
    original = target.read_bytes()
    document = ConfigDocument.parse(original.decode(ENCODING, errors = ENCODING_ERRORS))
    content = edit(document).render().encode(ENCODING, errors = ENCODING_ERRORS)
    if content == original:
      return False

    if not self.dry_run:
      self.backups.backup(target)

    scratch = scratch_file(target)
    try:
      scratch.write_bytes(content)
      try:
        self.validator.validate(scratch)
      except ValidationError as e:
        raise MutationError(str(target), e.diagnostic, rollback_failed = not self.rollback(target)) from e

      if self.dry_run:
        logger.info(f"dry-run: validated new content for {target}, leaving the file untouched")
        return True
      replace_file(scratch, target, mode = stat.S_IMODE(target.stat().st_mode))
      logger.info(f"updated {target}")
      return True
    finally:
      scratch_files.discard(str(scratch))

  def rollback(self, target: Path) -> bool:
    if self.dry_run:
      return True
    try:
      return self.backups.restore_latest(target)
    except (AlppiError, OSError) as e:
      logger.error(f"rollback of {target} failed: {e}")
      return False
