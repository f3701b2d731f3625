from __future__ import annotations

import argparse
import os
import shlex
import sys
import tempfile
from typing import Sequence

import alppi.utils.confirm as confirm_module
import alppi.utils.shell as shell_module
from alppi.model import Component
from alppi.presets import Presets, invoking_user
from alppi.retry import RetryRunner
from alppi.summary import print_summary
from alppi.utils.colors import *
from alppi.utils.confirm import confirm
from alppi.utils.error_handling import handle_ctrl_c
from alppi.utils.logging import logger
from alppi.utils.shell import shell


def create_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(
    prog = "alppi",
    description = "Arch Linux post-install: enables repositories and installs component groups",
  )
  parser.add_argument(
    "--all", default = False, action = "store_true",
    help = "install all components",
  )
  parser.add_argument(
    "--component", "-c", action = "append", default = [], metavar = "NAME",
    help = "install the given component (can be repeated); without --all/--component a menu is shown",
  )
  parser.add_argument(
    "--list", default = False, action = "store_true",
    help = "list available components and exit",
  )
  parser.add_argument(
    "--unattended", "-y", default = False, action = "store_true",
    help = "answer every confirmation with yes (including build definition reviews)",
  )
  parser.add_argument(
    "--dry-run", default = False, action = "store_true",
    help = "print state-changing commands instead of running them; pacman.conf is validated but not replaced",
  )
  parser.add_argument(
    "--config", default = "/etc/pacman.conf",
    help = "pacman configuration file to edit (default: %(default)s)",
  )
  parser.add_argument(
    "--backup-dir", default = None,
    help = "directory for backups of the configuration file (default: next to the file)",
  )
  parser.add_argument(
    "--aur-helper", default = "yay",
    help = "AUR helper used as secondary package source (default: %(default)s)",
  )
  parser.add_argument(
    "--aur-user", default = None,
    help = "user to run the AUR helper as when running as root (default: $SUDO_USER)",
  )
  parser.add_argument(
    "--gpu-package", action = "append", default = None, metavar = "PACKAGE",
    help = "GPU driver packages for the gaming component (default: mesa)",
  )
  parser.add_argument(
    "--no-cleanup", default = False, action = "store_true",
    help = "skip orphan removal and cache cleaning",
  )
  return parser


def select_components(components: Sequence[Component], args: argparse.Namespace) -> list[Component]:
  if args.all:
    return list(components)
  if args.component:
    by_name = {component.name: component for component in components}
    unknown = [name for name in args.component if name not in by_name]
    if unknown:
      raise SystemExit(f"unknown component(s): {', '.join(unknown)} (available: {', '.join(by_name)})")
    return [by_name[name] for name in dict.fromkeys(args.component)]
  return menu(components)


def menu(components: Sequence[Component]) -> list[Component]:
  printc(f"{BLUE}{BOLD}Arch Linux Post-Install Menu")
  for idx, component in enumerate(components, start = 1):
    print(f"{idx}. {component.name}: {component.description}")
  print("a. all components")
  print("q. exit")
  while True:
    answer = input("Select components (e.g. 1,3): ").strip().lower()
    if answer == "q":
      raise SystemExit(0)
    if answer == "a":
      return list(components)
    try:
      indexes = [int(part) for part in answer.replace(" ", ",").split(",") if part]
    except ValueError:
      print("invalid selection, please try again")
      continue
    if indexes and all(1 <= idx <= len(components) for idx in indexes):
      return [components[idx - 1] for idx in dict.fromkeys(indexes)]
    print("invalid selection, please try again")


def review_build_definition(package: str, definition: str) -> bool:
  if confirm_module.unattended_mode:
    return True
  printc(f"{BOLD}Reviewing PKGBUILD for {package}")
  if sys.stdout.isatty() and not shell_module.dry_run_mode:
    fd, path = tempfile.mkstemp(prefix = f"PKGBUILD.{package}.")
    try:
      with os.fdopen(fd, "w", encoding = "utf-8") as fh:
        fh.write(definition)
      shell(f"less {shlex.quote(path)}", check = False)
    finally:
      os.unlink(path)
  else:
    print(definition)
  return confirm(f"proceed with installation of {package}")


@handle_ctrl_c
def main(argv: Sequence[str] | None = None) -> int:
  args = create_parser().parse_args(argv)
  confirm_module.unattended_mode = args.unattended
  shell_module.dry_run_mode = args.dry_run
  shell_module.verbose_mode = True

  user = args.aur_user or invoking_user()
  orchestrator = Presets.arch(
    config_path = args.config,
    backup_dir = args.backup_dir,
    aur_helper = args.aur_helper,
    aur_user = user,
    reviewer = review_build_definition,
    confirm = confirm,
    remove_orphans = not args.no_cleanup,
    clean_cache = not args.no_cleanup,
    dry_run = args.dry_run,
  )
  components = Presets.components(
    orchestrator.primary,
    RetryRunner(),
    user = user,
    gpu_packages = args.gpu_package or ["mesa"],
  )

  if args.list:
    for component in components:
      print(f"{component.name}: {component.description}")
    return 0

  selected = select_components(components, args)
  result = orchestrator.run(selected)
  print_summary(result, selected, logger)
  return 1 if result.aborted else 0


if __name__ == "__main__":
  sys.exit(main())
