from __future__ import annotations

import shlex

from alppi.utils.shell import ShellResult, privileged, shell_capture, shell_success


class PacmanKeyring:
  """Trust store interface backed by pacman-key. All state-changing calls can safely be repeated,
  so they can be wrapped into a RetryRunner."""

  def has_key(self, key_id: str) -> bool:
    return shell_success(privileged(f"pacman-key --list-keys {shlex.quote(key_id)}"))

  def fetch_key(self, key_id: str, key_server: str) -> ShellResult:
    return shell_capture(privileged(f"pacman-key --recv-keys {shlex.quote(key_id)} --keyserver {shlex.quote(key_server)}"))

  def trust_key(self, key_id: str) -> ShellResult:
    return shell_capture(privileged(f"pacman-key --lsign-key {shlex.quote(key_id)}"))
