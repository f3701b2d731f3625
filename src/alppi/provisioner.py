from __future__ import annotations

from pathlib import Path

from alppi.errors import ProvisionError, ShellError, ValidationError
from alppi.managers.pacman import PacmanSource
from alppi.managers.pacman_key import PacmanKeyring
from alppi.model import RepositorySpec
from alppi.mutator import ENCODING, ENCODING_ERRORS, ConfigMutator
from alppi.pacman_conf import ConfigDocument, enable_repository
from alppi.retry import RetryRunner
from alppi.utils.logging import logger
from alppi.validator import Validator


class RepositoryProvisioner:
  """Enables repository sections in pacman.conf. Third-party repositories get their signing key
  and their keyring/mirrorlist packages installed first."""
  config_path: Path
  mutator: ConfigMutator
  keyring: PacmanKeyring
  pacman: PacmanSource
  retry: RetryRunner
  dry_run: bool

  def __init__(
    self,
    config_path: str | Path,
    mutator: ConfigMutator,
    keyring: PacmanKeyring,
    pacman: PacmanSource,
    retry: RetryRunner,
    dry_run: bool = False,
  ):
    self.config_path = Path(config_path)
    self.mutator = mutator
    self.keyring = keyring
    self.pacman = pacman
    self.retry = retry
    self.dry_run = dry_run

  def is_enabled(self, spec: RepositorySpec) -> bool:
    document = ConfigDocument.parse(self.config_path.read_text(encoding = ENCODING, errors = ENCODING_ERRORS))
    return document.has_section(spec.name, include = spec.include)

  def enable(self, spec: RepositorySpec) -> bool:
    """Returns True if pacman.conf was changed, False if the repository was already enabled."""
    if self.is_enabled(spec):
      logger.info(f"[{spec.name}] already enabled")
      return False

    if spec.key_id is not None:
      self.provision_trust(spec)

    try:
      Validator.validate_mirrorlist(spec.include)
    except ValidationError as e:
      if self.dry_run and not Path(spec.include).exists():
        logger.info(f"dry-run: {spec.include} does not exist yet, skipping changes to [{spec.name}]")
        return False
      raise ProvisionError(spec.name, "invalid_mirrorlist", e.diagnostic) from e

    if not self.dry_run:
      # mirror list as it was when the repository got enabled
      self.mutator.backups.backup(spec.include)

    changed = self.mutator.apply_edit(self.config_path, enable_repository(spec.name, spec.include))
    if changed:
      logger.info(f"[{spec.name}] enabled in {self.config_path}")

    # a failed refresh leaves pacman.conf as it is; the section itself was valid
    result = self.pacman.refresh()
    if not result.success:
      raise ProvisionError(spec.name, "sync_failure", result.output)
    return changed

  def provision_trust(self, spec: RepositorySpec):
    assert spec.key_id is not None
    key_id = spec.key_id
    if spec.installed_marker is not None and self.pacman.is_installed(spec.installed_marker):
      logger.info(f"{spec.installed_marker} already installed, skipping key setup for [{spec.name}]")
      return
    try:
      if not self.keyring.has_key(key_id):
        self.retry.run(
          lambda: self.keyring.fetch_key(key_id, spec.key_server).check(),
          description = f"fetch key {key_id} from {spec.key_server}",
        )
      self.retry.run(
        lambda: self.keyring.trust_key(key_id).check(),
        description = f"locally sign key {key_id}",
      )
      if spec.bootstrap_urls:
        self.retry.run(
          lambda: self.pacman.install_urls(spec.bootstrap_urls).check(),
          description = f"install keyring and mirrorlist for [{spec.name}]",
        )
    except ShellError as e:
      raise ProvisionError(spec.name, "trust_failure", e.diagnostic or str(e)) from e
