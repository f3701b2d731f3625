from __future__ import annotations

unattended_mode: bool = False


def confirm(message: str, default: bool = False) -> bool:
  """Asks a yes/no question. In unattended mode, every question is answered with yes."""
  if unattended_mode:
    return True
  choices = "[Y/n]" if default else "[y/N]"
  while True:
    answer = input(f"{message}: {choices} ").strip().lower()
    if answer == "": return default
    if answer in ("y", "yes"): return True
    if answer in ("n", "no"): return False
