from __future__ import annotations

import os
import shlex
import shutil
import signal
from functools import wraps
from typing import Any, Callable, TypeVar, cast

from alppi.utils.shell import privileged, shell_capture

FuncT = TypeVar("FuncT", bound = Callable[..., Any])


class ScratchFiles:
  """Registry of temporary files that must not survive the process, even if it gets interrupted."""
  paths: set[str]

  def __init__(self):
    self.paths = set()

  def register(self, path: str):
    self.paths.add(path)

  def discard(self, path: str):
    self.paths.discard(path)
    try:
      if os.path.isdir(path):
        shutil.rmtree(path, ignore_errors = True)
      elif os.path.lexists(path):
        os.unlink(path)
    except PermissionError:
      # staged by sudo inside a root-owned directory
      shell_capture(privileged(f"rm -rf {shlex.quote(path)}"))

  def cleanup(self):
    for path in list(self.paths):
      self.discard(path)


scratch_files = ScratchFiles()


def raise_keyboard_interrupt(signum: int, frame: Any):
  raise KeyboardInterrupt()


def handle_ctrl_c(func: FuncT) -> FuncT:
  """Turns SIGINT and SIGTERM into a clean exit. Scratch files are removed before exiting."""

  @wraps(func)
  def wrapped(*args: Any, **kwargs: Any) -> Any:
    previous = signal.signal(signal.SIGTERM, raise_keyboard_interrupt)
    try:
      return func(*args, **kwargs)
    except KeyboardInterrupt:
      print()
      raise SystemExit("process interrupted by user")
    finally:
      scratch_files.cleanup()
      signal.signal(signal.SIGTERM, previous)

  return cast(FuncT, wrapped)
