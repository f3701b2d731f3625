from __future__ import annotations

from typing import Sequence

from alppi.model import Component, ComponentStatus, repository_component
from alppi.orchestrator import RunResult
from alppi.utils.colors import *
from alppi.utils.logging import Logger


def color_for_status(status: ComponentStatus) -> str:
  if status == "installed": return GREEN
  if status == "partially-installed": return YELLOW
  if status == "failed": return RED
  if status == "skipped": return CYAN
  return PURPLE


def summary_lines(result: RunResult, components: Sequence[Component]) -> list[str]:
  """Human-readable component status report: repositories first, then the selected components
  (including the ones that were never attempted because the run was aborted)."""
  lines: list[str] = []
  names = [name for name in result.statuses.names() if name.startswith(repository_component(""))]
  names += [component.name for component in components]
  for name in dict.fromkeys(names):
    status = result.statuses.status(name)
    lines.append(f"- {color_for_status(status)}{name}{ENDC}: {status}")
    for detail in result.statuses.details(name):
      lines.append(f"    {detail}")
  return lines


def print_summary(result: RunResult, components: Sequence[Component], logger: Logger):
  print()
  problems = [message for message in logger.messages if message.startswith((YELLOW, RED))]
  if problems:
    printc(f"{BOLD}Warnings and errors logged during execution:")
    for message in dict.fromkeys(problems):
      printc(f"- {message}")
    print()
  printc(f"{BOLD}Component Summary:")
  for line in summary_lines(result, components):
    printc(line)
  print()
  if result.aborted:
    printc(f"{RED}run aborted: {result.abort_reason}")
  else:
    printc(f"{GREEN}all selected components processed")
