from pathlib import Path

import pytest

from alppi.errors import AlppiError, ProvisionError
from alppi.utils.error_handling import handle_ctrl_c, scratch_files


def test_scratch_files_are_removed_on_interrupt(tmp_path: Path):
  scratch = tmp_path / ".pacman.conf.scratch"
  scratch_dir = tmp_path / "photogimp.scratch"

  @handle_ctrl_c
  def interrupted():
    scratch.write_text("partial")
    scratch_dir.mkdir()
    (scratch_dir / "file").write_text("x")
    scratch_files.register(str(scratch))
    scratch_files.register(str(scratch_dir))
    raise KeyboardInterrupt()

  with pytest.raises(SystemExit, match = "interrupted"):
    interrupted()
  assert not scratch.exists()
  assert not scratch_dir.exists()
  assert scratch_files.paths == set()


def test_return_value_is_passed_through():
  @handle_ctrl_c
  def finished() -> int:
    return 3

  assert finished() == 3


def test_error_details():
  error = ProvisionError("chaotic-aur", "trust_failure", "gpg: keyserver receive failed\ngpg: no valid keys")
  assert error.details() == [
    "trust failure while provisioning repository chaotic-aur",
    "  gpg: keyserver receive failed",
    "  gpg: no valid keys",
  ]
  assert AlppiError("plain").details() == ["plain"]
