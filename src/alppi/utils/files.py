from __future__ import annotations

import os
import secrets
import shlex
import shutil
import stat
import tempfile
from pathlib import Path

from alppi.utils.error_handling import scratch_files
from alppi.utils.shell import privileged, shell_capture


def writable(path: Path) -> bool:
  """Checks if files can be created in the given directory (or its closest existing parent)
  by the current process. Everything else has to go through sudo."""
  directory = path
  while not directory.exists() and directory != directory.parent:
    directory = directory.parent
  return os.access(directory, os.W_OK)


def scratch_file(target: Path) -> Path:
  """Empty scratch file in the temp directory, registered for interrupt cleanup."""
  fd, path = tempfile.mkstemp(prefix = f".{target.name}.")
  os.close(fd)
  scratch_files.register(path)
  return Path(path)


def make_dirs(directory: Path):
  if directory.is_dir():
    return
  if writable(directory):
    directory.mkdir(parents = True, exist_ok = True)
  else:
    shell_capture(privileged(f"mkdir -p {shlex.quote(str(directory))}")).check()


def copy_file(source: Path, target: Path):
  """Copies a file including mode and timestamps."""
  if writable(target.parent):
    shutil.copy2(source, target)
  else:
    shell_capture(privileged(f"cp -p {shlex.quote(str(source))} {shlex.quote(str(target))}")).check()


def replace_file(source: Path, target: Path, mode: int | None = None):
  """Atomically replaces target with the content of source. The content is first staged next
  to target and then renamed over it, so readers see either the old or the new file.
  source itself is left in place. Without a mode, the mode of source is used."""
  file_mode = mode if mode is not None else stat.S_IMODE(source.stat().st_mode)
  staged = target.parent / f".{target.name}.{secrets.token_hex(6)}"
  scratch_files.register(str(staged))
  try:
    if writable(target.parent):
      shutil.copyfile(source, staged)
      os.chmod(staged, file_mode)
      os.replace(staged, target)
    else:
      owner = ""
      if target.exists():
        target_stat = target.stat()
        owner = f" -o {target_stat.st_uid} -g {target_stat.st_gid}"
      quoted_staged = shlex.quote(str(staged))
      shell_capture(privileged(f"install -m {file_mode:o}{owner} {shlex.quote(str(source))} {quoted_staged}")).check()
      shell_capture(privileged(f"mv -f {quoted_staged} {shlex.quote(str(target))}")).check()
  finally:
    scratch_files.discard(str(staged))
