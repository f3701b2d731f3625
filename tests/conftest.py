from pathlib import Path

import pytest

import alppi.utils.confirm as confirm_module
import alppi.utils.shell as shell_module
from alppi.utils.logging import logger


@pytest.fixture(autouse = True)
def reset_globals():
  logger.clear()
  yield
  logger.clear()
  shell_module.dry_run_mode = False
  shell_module.verbose_mode = False
  confirm_module.unattended_mode = False


@pytest.fixture
def mirrorlist(tmp_path: Path) -> Path:
  path = tmp_path / "mirrorlist"
  path.write_text("## Worldwide\nServer = https://geo.mirror.pkgbuild.com/$repo/os/$arch\n")
  return path


@pytest.fixture
def backup_dir(tmp_path: Path) -> Path:
  return tmp_path / "backups"
