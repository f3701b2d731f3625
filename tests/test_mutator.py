import os
from pathlib import Path

import pytest

from alppi.backup import BackupStore
from alppi.errors import MutationError
from alppi.mutator import ConfigMutator
from alppi.pacman_conf import enable_repository
from tests.fakes import FakeValidator

ORIGINAL = "[options]\nArchitecture = auto\n\n[core]\nInclude = /etc/pacman.d/mirrorlist\n"


@pytest.fixture
def config(tmp_path: Path) -> Path:
  path = tmp_path / "etc" / "pacman.conf"
  path.parent.mkdir()
  path.write_text(ORIGINAL)
  os.chmod(path, 0o640)
  return path


def test_successful_edit(config: Path, backup_dir: Path):
  validator = FakeValidator()
  mutator = ConfigMutator(BackupStore(backup_dir), validator)

  assert mutator.apply_edit(config, enable_repository("extra", "/etc/pacman.d/mirrorlist"))

  expected = ORIGINAL + "\n[extra]\nInclude = /etc/pacman.d/mirrorlist\n"
  assert config.read_text() == expected
  assert validator.candidates == [expected]
  assert os.stat(config).st_mode & 0o777 == 0o640
  backups = BackupStore(backup_dir).backups(config)
  assert [backup.read_text() for backup in backups] == [ORIGINAL]
  assert sorted(entry.name for entry in config.parent.iterdir()) == ["pacman.conf"]


def test_rejected_edit_leaves_file_untouched(config: Path, backup_dir: Path):
  before = config.read_bytes()
  mutator = ConfigMutator(BackupStore(backup_dir), FakeValidator(reject = True))

  with pytest.raises(MutationError) as error:
    mutator.apply_edit(config, enable_repository("extra", "/etc/pacman.d/mirrorlist"))

  assert not error.value.rollback_failed
  assert error.value.kind == "invalid_result"
  assert "could not be parsed" in error.value.diagnostic
  assert config.read_bytes() == before
  backups = BackupStore(backup_dir).backups(config)
  assert len(backups) == 1
  assert backups[0].read_bytes() == before
  assert sorted(entry.name for entry in config.parent.iterdir()) == ["pacman.conf"]


def test_noop_edit(config: Path, backup_dir: Path):
  validator = FakeValidator()
  mutator = ConfigMutator(BackupStore(backup_dir), validator)

  assert not mutator.apply_edit(config, enable_repository("core", "/etc/pacman.d/mirrorlist"))

  assert config.read_text() == ORIGINAL
  assert validator.candidates == []
  assert not backup_dir.exists()


def test_dry_run_validates_without_writing(config: Path, backup_dir: Path):
  validator = FakeValidator()
  mutator = ConfigMutator(BackupStore(backup_dir), validator, dry_run = True)

  assert mutator.apply_edit(config, enable_repository("extra", "/etc/pacman.d/mirrorlist"))

  assert config.read_text() == ORIGINAL
  assert len(validator.candidates) == 1
  assert not backup_dir.exists()
  assert sorted(entry.name for entry in config.parent.iterdir()) == ["pacman.conf"]


def test_failed_rollback_is_reported(config: Path, backup_dir: Path, monkeypatch: pytest.MonkeyPatch):
  store = BackupStore(backup_dir)
  monkeypatch.setattr(store, "restore_latest", lambda path: False)
  mutator = ConfigMutator(store, FakeValidator(reject = True))

  with pytest.raises(MutationError) as error:
    mutator.apply_edit(config, enable_repository("extra", "/etc/pacman.d/mirrorlist"))

  assert error.value.rollback_failed
