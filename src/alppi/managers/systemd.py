from __future__ import annotations

import shlex
from typing import Sequence

from alppi.utils.shell import ShellResult, privileged, shell_capture, shell_query


class SystemdUnits:
  user: str | None

  def __init__(self, user: str | None = None):
    self.user = user

  def systemctl(self) -> str:
    return f"systemctl --user -M {self.user}@" if self.user is not None else privileged("systemctl")

  def exists(self, unit: str) -> bool:
    output = shell_query(f"systemctl list-unit-files --no-legend {shlex.quote(unit)}").output
    return bool(output.strip())

  def enable(self, units: Sequence[str]) -> ShellResult:
    shell_capture(f"{self.systemctl()} daemon-reload")
    return shell_capture(f"{self.systemctl()} enable --now {' '.join(shlex.quote(unit) for unit in units)}")

  def start(self, unit: str) -> ShellResult:
    return shell_capture(f"{self.systemctl()} start {shlex.quote(unit)}")
