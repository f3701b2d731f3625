from __future__ import annotations

import shutil
from typing import Callable

from urllib3 import request
from urllib3.exceptions import HTTPError
from urllib3.util import Timeout

from alppi.errors import SafetyCheckError
from alppi.managers.pacman import AurHelper, PacmanSource
from alppi.utils.logging import logger
from alppi.utils.shell import is_root, shell_success


class SafetyChecks:
  """Hard preconditions of a run. Any failing check aborts the run before anything is changed."""
  pacman: PacmanSource
  aur_helper: AurHelper | None
  min_free_mb: int
  connectivity_url: str
  disk_path: str

  def __init__(
    self,
    pacman: PacmanSource,
    aur_helper: AurHelper | None = None,
    min_free_mb: int = 2000,
    connectivity_url: str = "https://archlinux.org",
    disk_path: str = "/",
  ):
    self.pacman = pacman
    self.aur_helper = aur_helper
    self.min_free_mb = min_free_mb
    self.connectivity_url = connectivity_url
    self.disk_path = disk_path

  def run_all(self, need_secondary: bool = False):
    checks: list[tuple[str, Callable[[], None]]] = [
      ("privileges", self.check_privileges),
      ("connectivity", self.check_connectivity),
      ("disk space", self.check_disk_space),
      ("package database", self.check_package_database),
    ]
    if need_secondary:
      checks.append(("aur helper", self.check_aur_helper))
    for name, check in checks:
      check()
      logger.info(f"safety check passed: {name}")

  def check_privileges(self):
    if not is_root() and not shell_success("sudo -n true"):
      raise SafetyCheckError("privileges", "alppi requires root or passwordless sudo (run 'sudo -v' first)")

  def check_connectivity(self):
    try:
      response = request("HEAD", self.connectivity_url, timeout = Timeout(total = 10.0), retries = 2)
    except HTTPError as e:
      raise SafetyCheckError("connectivity", f"{self.connectivity_url} is not reachable", str(e)) from e
    if response.status >= 500:
      raise SafetyCheckError("connectivity", f"{self.connectivity_url} answered with HTTP {response.status}")

  def check_disk_space(self):
    free_mb = shutil.disk_usage(self.disk_path).free // (1024 * 1024)
    if free_mb < self.min_free_mb:
      raise SafetyCheckError("disk space", f"{free_mb} MB available on {self.disk_path}, {self.min_free_mb} MB required")

  def check_package_database(self):
    result = self.pacman.check_database()
    if not result.success:
      raise SafetyCheckError("package database", "broken dependencies detected, run 'pacman -Syu' and fix them first", result.output)

  def check_aur_helper(self):
    if self.aur_helper is None or not self.aur_helper.is_present():
      command = self.aur_helper.command if self.aur_helper else "yay"
      raise SafetyCheckError("aur helper", f"{command} not found, please install it first")
    if is_root() and self.aur_helper.user is None:
      raise SafetyCheckError(
        "aur helper",
        f"{self.aur_helper.command} must not run as root, start alppi via sudo or pass --aur-user",
      )
