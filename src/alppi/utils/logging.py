from __future__ import annotations

from alppi.utils.colors import RED, YELLOW, printc


class Logger:
  """Collects messages during a run; they are printed in one block by the summary reporter.
  With echo enabled, every message is also printed immediately."""
  messages: list[str]
  echo: bool

  def __init__(self, echo: bool = True):
    self.messages = []
    self.echo = echo

  def clear(self):
    self.messages = []

  def info(self, message: str):
    self.add(message)

  def warn(self, message: str):
    self.add(f"{YELLOW}{message}")

  def error(self, message: str):
    self.add(f"{RED}{message}")

  def add(self, message: str):
    self.messages.append(message)
    if self.echo:
      printc(message)


logger = Logger()
