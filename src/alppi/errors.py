from __future__ import annotations

from typing import Literal, TypeAlias

ProvisionErrorKind: TypeAlias = Literal["trust_failure", "sync_failure", "invalid_mirrorlist"]


class AlppiError(Exception):
  """Base class for all errors that alppi reports to the user. Every error carries the raw
  diagnostic text of the underlying tool (if there is one), so failures can be traced back."""
  diagnostic: str

  def __init__(self, message: str, diagnostic: str = ""):
    super().__init__(message)
    self.diagnostic = diagnostic

  def details(self) -> list[str]:
    lines = [str(self)]
    if self.diagnostic:
      lines += [f"  {line}" for line in self.diagnostic.splitlines()]
    return lines


class ShellError(AlppiError):
  command: str
  returncode: int

  def __init__(self, command: str, returncode: int, output: str):
    super().__init__(f"command failed ({returncode}): {command}", output)
    self.command = command
    self.returncode = returncode


class ValidationError(AlppiError):
  path: str

  def __init__(self, path: str, diagnostic: str):
    super().__init__(f"configuration rejected: {path}", diagnostic)
    self.path = path


class MutationError(AlppiError):
  """Raised when an edit produced an invalid configuration. If the rollback also failed, the
  file may be in an inconsistent state and the whole run must be aborted."""
  path: str
  kind: Literal["invalid_result"]
  rollback_failed: bool

  def __init__(self, path: str, diagnostic: str, rollback_failed: bool = False):
    message = f"invalid result when editing {path}"
    if rollback_failed:
      message += " (rollback failed, file may be inconsistent)"
    super().__init__(message, diagnostic)
    self.path = path
    self.kind = "invalid_result"
    self.rollback_failed = rollback_failed


class ProvisionError(AlppiError):
  repository: str
  kind: ProvisionErrorKind

  def __init__(self, repository: str, kind: ProvisionErrorKind, diagnostic: str = ""):
    super().__init__(f"{kind.replace('_', ' ')} while provisioning repository {repository}", diagnostic)
    self.repository = repository
    self.kind = kind


class ResolutionError(AlppiError):
  package: str

  def __init__(self, package: str):
    super().__init__(f"package not found in any package source: {package}")
    self.package = package


class InstallError(AlppiError):
  package: str

  def __init__(self, package: str, diagnostic: str):
    super().__init__(f"failed to install package: {package}", diagnostic)
    self.package = package


class SafetyCheckError(AlppiError):
  check: str

  def __init__(self, check: str, message: str, diagnostic: str = ""):
    super().__init__(f"safety check '{check}' failed: {message}", diagnostic)
    self.check = check
