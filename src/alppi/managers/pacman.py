from __future__ import annotations

import shlex
from abc import ABCMeta, abstractmethod
from typing import Sequence

from alppi.model import Source
from alppi.utils.shell import ShellResult, is_root, privileged, shell_capture, shell_query


class PackageSource(metaclass = ABCMeta):
  """Command interface of a package source. All operations return the exit status together
  with the raw tool output, so failures can be reported with their original diagnostics."""
  name: str
  source: Source
  repositories: Sequence[str] = []  # repositories that have to be provisioned before this source is usable

  @abstractmethod
  def is_available(self, package: str) -> bool:
    """Checks if the package can be installed from this source."""
    pass

  @abstractmethod
  def is_installed(self, package: str) -> bool:
    pass

  @abstractmethod
  def install(self, package: str) -> ShellResult:
    pass

  @abstractmethod
  def remove(self, packages: Sequence[str]) -> ShellResult:
    pass

  @abstractmethod
  def list_orphans(self) -> list[str]:
    pass

  @abstractmethod
  def clear_cache(self) -> ShellResult:
    pass

  def build_definition(self, package: str) -> str | None:
    """Returns the build script of a package so that it can be reviewed before installing.
    Binary package sources return None."""
    return None

  @staticmethod
  def parse_pkgs(output: str) -> list[str]:
    if "there is nothing to do" in output: return []
    return [pkg.strip() for pkg in output.split("\n") if pkg.strip()]


class PacmanSource(PackageSource):
  """The official repositories (and every other repository enabled in pacman.conf)."""

  def __init__(self, repositories: Sequence[str] | None = None):
    self.name = "pacman"
    self.source = "primary"
    self.repositories = list(repositories or [])

  def is_available(self, package: str) -> bool:
    return shell_query(f"pacman -Sp {shlex.quote(package)}").success

  def is_installed(self, package: str) -> bool:
    return shell_query(f"pacman -Q {shlex.quote(package)}").success

  def install(self, package: str) -> ShellResult:
    return shell_capture(privileged(f"pacman -S --noconfirm --needed {shlex.quote(package)}"))

  def install_urls(self, urls: Sequence[str]) -> ShellResult:
    return shell_capture(privileged(f"pacman -U --noconfirm {' '.join(shlex.quote(url) for url in urls)}"))

  def remove(self, packages: Sequence[str]) -> ShellResult:
    return shell_capture(privileged(f"pacman -Rns --noconfirm {' '.join(shlex.quote(pkg) for pkg in packages)}"))

  def list_orphans(self) -> list[str]:
    return self.parse_pkgs(shell_query("pacman -Qdtq").output)

  def clear_cache(self) -> ShellResult:
    return shell_capture(privileged("pacman -Sc --noconfirm"))

  def refresh(self) -> ShellResult:
    # Arch doesn't support partial upgrades, so syncing the databases always comes with an update
    return shell_capture(privileged("pacman -Syu --noconfirm"))

  def check_database(self) -> ShellResult:
    return shell_query(privileged("pacman -Dk"))


class AurHelper(PackageSource):
  """The AUR, accessed through an AUR helper like yay or paru. AUR helpers refuse to run as root,
  so when alppi itself runs as root, the helper is started as the given (unprivileged) user."""
  command: str
  user: str | None

  def __init__(self, command: str = "yay", user: str | None = None, repositories: Sequence[str] | None = None):
    self.name = command
    self.source = "secondary"
    self.command = command
    self.user = user
    self.repositories = list(repositories or [])

  def run_as(self) -> str | None:
    return self.user if is_root() else None

  def is_present(self) -> bool:
    return shell_query(f"command -v {shlex.quote(self.command)}").success

  def is_available(self, package: str) -> bool:
    return shell_query(f"{self.command} -Sp {shlex.quote(package)}", user = self.run_as()).success

  def is_installed(self, package: str) -> bool:
    return shell_query(f"{self.command} -Q {shlex.quote(package)}", user = self.run_as()).success

  def install(self, package: str) -> ShellResult:
    return shell_capture(f"{self.command} -S --noconfirm --needed {shlex.quote(package)}", user = self.run_as())

  def remove(self, packages: Sequence[str]) -> ShellResult:
    return shell_capture(f"{self.command} -Rns --noconfirm {' '.join(shlex.quote(pkg) for pkg in packages)}", user = self.run_as())

  def list_orphans(self) -> list[str]:
    return self.parse_pkgs(shell_query(f"{self.command} -Qdtq", user = self.run_as()).output)

  def clear_cache(self) -> ShellResult:
    return shell_capture(f"{self.command} -Sc --noconfirm", user = self.run_as())

  def build_definition(self, package: str) -> str | None:
    result = shell_query(f"{self.command} -Gp {shlex.quote(package)}", user = self.run_as())
    return result.output if result.success and result.output else None
