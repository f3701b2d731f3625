from __future__ import annotations

import threading
from typing import Any, Callable

from alppi.utils.shell import is_root, shell_success


def refresh_sudo_timestamp() -> Any:
  return shell_success("sudo -n -v")


class PrivilegeHeartbeat:
  """Keeps the sudo credentials of the invoking user alive while a long run is in progress.
  The background thread lives exactly as long as the run; use it as a context manager."""
  interval: float
  refresh: Callable[[], Any]
  enabled: bool
  stop_event: threading.Event
  thread: threading.Thread | None

  def __init__(self, interval: float = 60.0, refresh: Callable[[], Any] = refresh_sudo_timestamp, enabled: bool | None = None):
    self.interval = interval
    self.refresh = refresh
    self.enabled = (not is_root()) if enabled is None else enabled
    self.stop_event = threading.Event()
    self.thread = None

  def start(self):
    if not self.enabled or self.thread is not None:
      return
    self.stop_event.clear()
    self.thread = threading.Thread(target = self.loop, name = "privilege-heartbeat", daemon = True)
    self.thread.start()

  def stop(self):
    self.stop_event.set()
    if self.thread is not None:
      self.thread.join()
      self.thread = None

  def is_running(self) -> bool:
    return self.thread is not None and self.thread.is_alive()

  def loop(self):
    while not self.stop_event.wait(self.interval):
      self.refresh()

  def __enter__(self) -> PrivilegeHeartbeat:
    self.start()
    return self

  def __exit__(self, *exc_info: Any):
    self.stop()
