from __future__ import annotations

import re
import shlex
from pathlib import Path

from alppi.errors import ValidationError
from alppi.pacman_conf import SECTION_HEADER
from alppi.utils.shell import ShellResult, shell_query


class Validator:
  """Lets pacman-conf parse a candidate configuration. pacman-conf only reads the file, so
  validation never changes the system state."""
  command: str

  def __init__(self, command: str = "pacman-conf"):
    self.command = command

  def validate(self, candidate_path: str | Path):
    result = self.run_parser(str(candidate_path))
    errors = self.find_errors(result.output, str(candidate_path))
    if not result.success or errors:
      raise ValidationError(str(candidate_path), result.output)

  def run_parser(self, candidate_path: str) -> ShellResult:
    return shell_query(f"{self.command} --config {shlex.quote(candidate_path)} --repo-list")

  @staticmethod
  def find_errors(output: str, candidate_path: str) -> list[str]:
    return [
      line for line in output.splitlines()
      if line.lower().startswith("error:") and (candidate_path in line or "config file" in line)
    ]

  @staticmethod
  def validate_mirrorlist(path: str | Path):
    """A mirror list must contain at least one server and no section headers (section headers
    are a sign that pacman.conf content ended up in the wrong file)."""
    mirrorlist = Path(path)
    if not mirrorlist.is_file():
      raise ValidationError(str(mirrorlist), f"mirror list not found: {mirrorlist}")
    lines = mirrorlist.read_text(encoding = "utf-8", errors = "replace").splitlines()
    headers = [line for line in lines if SECTION_HEADER.match(line)]
    if headers:
      raise ValidationError(str(mirrorlist), f"mirror list contains section markers: {', '.join(h.strip() for h in headers)}")
    if not any(re.match(r"^\s*Server\s*=\s*\S+", line) for line in lines):
      raise ValidationError(str(mirrorlist), "mirror list contains no servers")
