from __future__ import annotations

from inspect import cleandoc
from os import environ, getuid
from subprocess import PIPE, STDOUT, CalledProcessError, Popen, run

from alppi.errors import ShellError

verbose_mode: bool = False
dry_run_mode: bool = False


class ShellResult:
  command: str
  returncode: int
  output: str

  def __init__(self, command: str, returncode: int, output: str):
    self.command = command
    self.returncode = returncode
    self.output = output

  @property
  def success(self) -> bool:
    return self.returncode == 0

  def check(self) -> ShellResult:
    if not self.success:
      raise ShellError(self.command, self.returncode, self.output)
    return self


def echo_command(command: str, user: str | None = None):
  lines = cleandoc(command).split("\n")
  for idx, line in enumerate(lines):
    prefix = "$" if idx == 0 else " "
    suffix = f"  (as {user})" if user and idx == 0 else ""
    print(f"{prefix} {line}{suffix}")


def shell(command: str, check: bool = True, executable: str = "/bin/sh", user: str | None = None):
  """Runs a command attached to the terminal, so the user can see the output and answer prompts."""
  if verbose_mode or dry_run_mode:
    echo_command(command, user)
  if dry_run_mode:
    return
  with Popen(
    command,
    shell = True,
    executable = executable,
    user = user,
    env = env_for_user(user) if user else None,
  ) as process:
    exitcode = process.wait()
    if check and exitcode != 0:
      raise ShellError(command, exitcode, "")


def shell_capture(command: str, executable: str = "/bin/sh", user: str | None = None) -> ShellResult:
  """Runs a state-changing command and captures stdout and stderr (interleaved) for diagnostics.
  In dry-run mode the command is only printed."""
  if verbose_mode or dry_run_mode:
    echo_command(command, user)
  if dry_run_mode:
    return ShellResult(command, 0, "")
  process = run(
    command,
    executable = executable,
    shell = True,
    stdout = PIPE,
    stderr = STDOUT,
    universal_newlines = True,
    user = user,
    env = env_for_user(user) if user else None,
  )
  return ShellResult(command, process.returncode, process.stdout.strip())


def shell_query(command: str, executable: str = "/bin/sh", user: str | None = None) -> ShellResult:
  """Runs a read-only command and captures its exit code and output. Also runs in dry-run mode."""
  process = run(
    command,
    executable = executable,
    shell = True,
    stdout = PIPE,
    stderr = STDOUT,
    universal_newlines = True,
    user = user,
    env = env_for_user(user) if user else None,
  )
  return ShellResult(command, process.returncode, process.stdout.strip())


def shell_output(command: str, check: bool = True, executable: str = "/bin/sh", user: str | None = None) -> str:
  return run(
    command,
    executable = executable,
    check = check,
    shell = True,
    capture_output = True,
    universal_newlines = True,
    user = user,
    env = env_for_user(user) if user else None,
  ).stdout.strip()


def shell_success(command: str, executable: str = "/bin/sh", user: str | None = None) -> bool:
  try:
    run(
      command,
      executable = executable,
      check = True,
      shell = True,
      capture_output = True,
      universal_newlines = True,
      user = user,
      env = env_for_user(user) if user else None,
    )
    return True
  except CalledProcessError:
    return False


def is_root() -> bool:
  return getuid() == 0


def privileged(command: str) -> str:
  """Prefixes a command with sudo unless we're already running as root."""
  return command if is_root() else f"sudo {command}"


def env_for_user(user: str) -> dict[str, str]:
  user_homes: dict[str, str] = dict([line.split(":") for line in shell_output("getent passwd | cut -d: -f1,6").splitlines()])
  home = user_homes.get(user, None)
  result = {**environ, "USER": user}
  if home:
    result["HOME"] = home
  return result
