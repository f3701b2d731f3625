from __future__ import annotations

import os
import pwd
from typing import Sequence

from alppi.actions import enable_service, install_photogimp, setup_zram
from alppi.backup import BackupStore
from alppi.heartbeat import PrivilegeHeartbeat
from alppi.managers import AurHelper, PackageSource, PacmanKeyring, PacmanSource
from alppi.model import *
from alppi.mutator import ConfigMutator
from alppi.orchestrator import Confirm, InstallationOrchestrator, Reviewer
from alppi.provisioner import RepositoryProvisioner
from alppi.resolver import PackageResolver
from alppi.retry import RetryRunner
from alppi.safety import SafetyChecks
from alppi.validator import Validator

CHAOTIC_KEY = "3056513887B78AEB"
CHAOTIC_KEYSERVER = "keyserver.ubuntu.com"
CHAOTIC_URL = "https://cdn-mirror.chaotic.cx/chaotic-aur"

MULTILIB = RepositorySpec("multilib", include = "/etc/pacman.d/mirrorlist")

CHAOTIC_AUR = RepositorySpec(
  "chaotic-aur",
  include = "/etc/pacman.d/chaotic-mirrorlist",
  key_id = CHAOTIC_KEY,
  key_server = CHAOTIC_KEYSERVER,
  bootstrap_urls = [
    f"{CHAOTIC_URL}/chaotic-keyring.pkg.tar.zst",
    f"{CHAOTIC_URL}/chaotic-mirrorlist.pkg.tar.zst",
  ],
  installed_marker = "chaotic-keyring",
)

PRODUCTIVITY_PACKAGES = ["libreoffice-fresh", "libreoffice-fresh-sv", "digikam"]

GAMING_PACKAGES = [
  "steam",
  "vulkan-icd-loader",
  "lib32-vulkan-icd-loader",
  "gamemode",
  "wine",
  "protontricks",
  "mangohud",
  "corectrl",
  "vkbasalt",
  "vkd3d",
  "lutris",
  "pipewire",
  "pipewire-pulse",
  "irqbalance",
]

AUR_PACKAGES = ["proton-ge-custom", "linux-zen", "dxvk-bin", "goverlay", "hunspell-sv"]


def invoking_user() -> str | None:
  """The user who called sudo, or the current user if alppi wasn't started through sudo."""
  user = os.environ.get("SUDO_USER", None)
  if user:
    return user
  return pwd.getpwuid(os.getuid()).pw_name if os.getuid() != 0 else None


def home_of(user: str | None) -> str:
  return pwd.getpwnam(user).pw_dir if user else os.path.expanduser("~")


class Presets:

  @staticmethod
  def repositories() -> list[RepositorySpec]:
    return [MULTILIB, CHAOTIC_AUR]

  @staticmethod
  def components(
    pacman: PackageSource,
    retry: RetryRunner,
    user: str | None = None,
    gpu_packages: Sequence[str] = ("mesa",),
  ) -> list[Component]:
    """Component groups of the Arch post-install setup. GPU drivers are passed in by the caller."""
    return [
      Component(
        "gaming",
        "Steam, Vulkan, Wine, MangoHud, Corectrl, VKBasalt, Lutris",
        PackageGroup(PackageRequest(*GAMING_PACKAGES, *gpu_packages, repositories = "multilib")),
      ),
      Component(
        "productivity",
        "LibreOffice, digiKam",
        PackageGroup(PackageRequest(*PRODUCTIVITY_PACKAGES)),
      ),
      Component(
        "aur",
        "Proton-GE, linux-zen, dxvk-bin, goverlay, hunspell-sv",
        PackageGroup(AurPackages(*AUR_PACKAGES)),
        repositories = "chaotic-aur",
      ),
      Component(
        "photogimp",
        "PhotoGIMP configuration for GIMP 3.0",
        Action(install_photogimp(home_of(user), retry, owner = user)),
      ),
      Component(
        "gamemoded",
        "gamemode daemon for gaming performance",
        Action(enable_service("gamemoded.service", user = user)),
      ),
      Component(
        "zram",
        "ZRAM swap (compressed memory, half of the RAM)",
        Action(setup_zram(pacman)),
      ),
      Component(
        "irqbalance",
        "irqbalance daemon for network performance",
        Action(enable_service("irqbalance.service")),
      ),
    ]

  @staticmethod
  def arch(
    config_path: str = "/etc/pacman.conf",
    backup_dir: str | None = None,
    aur_helper: str | None = "yay",
    aur_user: str | None = None,
    retry_attempts: int = 3,
    retry_delay: float = 5.0,
    min_free_mb: int = 2000,
    connectivity_url: str = "https://archlinux.org",
    heartbeat_interval: float = 60.0,
    reviewer: Reviewer | None = None,
    confirm: Confirm = lambda message: True,
    remove_orphans: bool = True,
    clean_cache: bool = True,
    dry_run: bool = False,
  ) -> InstallationOrchestrator:
    pacman = PacmanSource()
    aur = AurHelper(aur_helper, user = aur_user) if aur_helper else None
    retry = RetryRunner(max_attempts = retry_attempts, delay = retry_delay)
    mutator = ConfigMutator(BackupStore(backup_dir), Validator(), dry_run = dry_run)
    return InstallationOrchestrator(
      safety = SafetyChecks(pacman, aur, min_free_mb = min_free_mb, connectivity_url = connectivity_url),
      provisioner = RepositoryProvisioner(config_path, mutator, PacmanKeyring(), pacman, retry, dry_run = dry_run),
      resolver = PackageResolver(pacman, aur),
      primary = pacman,
      secondary = aur,
      repositories = Presets.repositories(),
      heartbeat = PrivilegeHeartbeat(interval = heartbeat_interval),
      reviewer = reviewer,
      confirm = confirm,
      remove_orphans = remove_orphans,
      clean_cache = clean_cache,
    )
