from __future__ import annotations

import io
import os
import shutil
import tempfile
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Callable

from urllib3 import request
from urllib3.util import Timeout

import alppi.utils.shell as shell_module
from alppi.errors import AlppiError
from alppi.managers.pacman import PackageSource
from alppi.managers.systemd import SystemdUnits
from alppi.retry import RetryRunner
from alppi.utils.error_handling import scratch_files
from alppi.utils.files import make_dirs, replace_file, scratch_file
from alppi.utils.logging import logger
from alppi.utils.shell import is_root

PHOTOGIMP_URL = "https://github.com/Diolinux/PhotoGIMP/archive/master.zip"
PHOTOGIMP_CONFIG = ".config/GIMP/3.0"
ZRAM_CONFIG = "[zram0]\nzram-size = ram / 2\n"


def enable_service(unit: str, user: str | None = None) -> Callable[[], None]:
  def execute():
    systemd = SystemdUnits(user)
    if user is None and not systemd.exists(unit):
      raise AlppiError(f"{unit} not found, make sure the package providing it is installed")
    systemd.enable([unit]).check()
    logger.info(f"{unit} enabled")

  return execute


def setup_zram(pacman: PackageSource, config_path: str = "/etc/systemd/zram-generator.conf") -> Callable[[], None]:
  def execute():
    pacman.install("zram-generator").check()
    write_file(Path(config_path), ZRAM_CONFIG)
    SystemdUnits().start("systemd-zram-setup@zram0.service").check()
    logger.info("ZRAM enabled")

  return execute


def install_photogimp(home: str, retry: RetryRunner, owner: str | None = None, url: str = PHOTOGIMP_URL) -> Callable[[], None]:
  """Downloads the PhotoGIMP configuration and copies it into the GIMP config dir of the user.
  An existing GIMP config is copied away first (<dir>.bak.<timestamp>)."""

  def execute():
    target = Path(home) / PHOTOGIMP_CONFIG
    if shell_module.dry_run_mode:
      print(f"(dry-run) download {url} and copy its GIMP config into {target}")
      return
    archive = retry.run(lambda: download(url), description = f"download {url}")
    temp_dir = tempfile.mkdtemp(prefix = "photogimp.")
    scratch_files.register(temp_dir)
    try:
      with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        zf.extractall(temp_dir)
      sources = [entry / PHOTOGIMP_CONFIG for entry in Path(temp_dir).iterdir() if (entry / PHOTOGIMP_CONFIG).is_dir()]
      if not sources:
        raise AlppiError(f"archive from {url} does not contain {PHOTOGIMP_CONFIG}")
      if target.is_dir():
        backup = target.with_name(f"{target.name}.bak.{datetime.now().strftime('%Y%m%dT%H%M%S')}")
        shutil.copytree(target, backup)
        logger.info(f"backed up existing GIMP config to {backup}")
      shutil.copytree(sources[0], target, dirs_exist_ok = True)
      if owner is not None and is_root():
        chown_tree(target, owner)
    finally:
      scratch_files.discard(temp_dir)
    logger.info(f"PhotoGIMP configuration copied into {target}")

  return execute


def download(url: str) -> bytes:
  response = request("GET", url, timeout = Timeout(connect = 10.0, read = 60.0))
  if response.status != 200:
    raise AlppiError(f"download of {url} failed with HTTP {response.status}", response.data.decode("utf-8", errors = "replace")[:500])
  return response.data


def write_file(path: Path, content: str, mode: int = 0o644):
  if shell_module.dry_run_mode:
    print(f"(dry-run) write {path}")
    return
  make_dirs(path.parent)
  scratch = scratch_file(path)
  try:
    scratch.write_text(content, encoding = "utf-8")
    replace_file(scratch, path, mode)
  finally:
    scratch_files.discard(str(scratch))


def chown_tree(path: Path, owner: str):
  shutil.chown(path, user = owner)
  for root, dirs, files in os.walk(path):
    for name in [*dirs, *files]:
      shutil.chown(os.path.join(root, name), user = owner)
