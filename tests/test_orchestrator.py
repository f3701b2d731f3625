import pytest

from alppi.errors import AlppiError, InstallError, MutationError, ProvisionError, SafetyCheckError
from alppi.heartbeat import PrivilegeHeartbeat
from alppi.model import Action, AurPackages, Component, PackageGroup, PackageRequest, RepositorySpec
from alppi.orchestrator import InstallationOrchestrator
from alppi.resolver import PackageResolver
from tests.fakes import FakeProvisioner, FakeSafety, FakeSource

MULTILIB = RepositorySpec("multilib")
CHAOTIC = RepositorySpec("chaotic-aur", key_id = "ABCDEF")


def orchestrator(
  primary: FakeSource,
  secondary: FakeSource | None = None,
  safety: FakeSafety | None = None,
  provisioner: FakeProvisioner | None = None,
  **kwargs,
) -> InstallationOrchestrator:
  return InstallationOrchestrator(
    safety = safety or FakeSafety(),  # type: ignore[arg-type]
    provisioner = provisioner or FakeProvisioner(),  # type: ignore[arg-type]
    resolver = PackageResolver(primary, secondary),
    primary = primary,
    secondary = secondary,
    repositories = [MULTILIB, CHAOTIC],
    **kwargs,
  )


def test_partially_installed_group():
  primary = FakeSource("pacman")
  secondary = FakeSource("yay", "secondary", available = ["a", "b"])
  component = Component("aur", "AUR packages", PackageGroup(AurPackages("a", "b", "c")))

  result = orchestrator(primary, secondary).run([component])

  assert result.stage == "done"
  assert not result.aborted
  assert result.statuses.status("aur") == "partially-installed"
  assert secondary.installed == ["a", "b"]
  assert primary.installed == []
  details = result.statuses.details("aur")
  assert "installed: a, b" in details
  assert "package not found in any package source: c" in details


def test_fully_installed_and_failed_groups():
  primary = FakeSource("pacman", available = ["steam", "wine", "broken"], broken = ["broken"])
  components = [
    Component("gaming", "games", PackageGroup(PackageRequest("steam", "wine"))),
    Component("broken", "broken", PackageGroup(PackageRequest("broken", "missing"))),
  ]

  result = orchestrator(primary).run(components)

  assert result.statuses.status("gaming") == "installed"
  assert result.statuses.status("broken") == "failed"
  assert "failed to install package: broken" in result.statuses.details("broken")


def test_failing_safety_check_aborts_the_run():
  primary = FakeSource("pacman", available = ["steam"])
  provisioner = FakeProvisioner()
  refreshes: list[int] = []
  heartbeat = PrivilegeHeartbeat(interval = 0.01, refresh = lambda: refreshes.append(1), enabled = True)
  component = Component("gaming", "games", PackageGroup(PackageRequest("steam", repositories = "multilib")))

  result = orchestrator(
    primary,
    safety = FakeSafety(SafetyCheckError("disk space", "10 MB available")),
    provisioner = provisioner,
    heartbeat = heartbeat,
  ).run([component])

  assert result.aborted
  assert result.stage == "aborted"
  assert isinstance(result.abort_reason, SafetyCheckError)
  assert provisioner.enabled == []
  assert primary.installed == []
  assert result.statuses.names() == []
  assert result.statuses.status("gaming") == "not-attempted"
  assert not heartbeat.is_running()


def test_failed_repository_skips_dependent_components():
  primary = FakeSource("pacman", available = ["steam", "libreoffice-fresh"])
  provisioner = FakeProvisioner({"multilib": ProvisionError("multilib", "sync_failure", "error: failed to synchronize")})
  components = [
    Component("gaming", "games", PackageGroup(PackageRequest("steam", repositories = "multilib"))),
    Component("productivity", "office", PackageGroup(PackageRequest("libreoffice-fresh"))),
  ]

  result = orchestrator(primary, provisioner = provisioner).run(components)

  assert result.stage == "done"
  assert result.statuses.status("repository:multilib") == "failed"
  assert result.statuses.status("gaming") == "skipped"
  assert result.statuses.status("productivity") == "installed"
  assert primary.installed == ["libreoffice-fresh"]


def test_action_depending_on_failed_repository_is_skipped():
  calls: list[str] = []
  provisioner = FakeProvisioner({"chaotic-aur": ProvisionError("chaotic-aur", "trust_failure")})
  component = Component("setup", "setup", Action(lambda: calls.append("run")), repositories = "chaotic-aur")

  result = orchestrator(FakeSource("pacman"), provisioner = provisioner).run([component])

  assert result.statuses.status("setup") == "skipped"
  assert calls == []


def test_unknown_repository_fails():
  component = Component("custom", "custom", PackageGroup(PackageRequest("a", repositories = "custom-repo")))

  result = orchestrator(FakeSource("pacman", available = ["a"])).run([component])

  assert result.statuses.status("repository:custom-repo") == "failed"
  assert result.statuses.status("custom") == "skipped"


def test_repositories_are_recorded():
  component = Component("gaming", "games", PackageGroup(PackageRequest("steam", repositories = "multilib")))
  result = orchestrator(FakeSource("pacman", available = ["steam"])).run([component])
  assert result.statuses.status("repository:multilib") == "installed"
  assert result.statuses.details("repository:multilib") == ["enabled"]


def test_action_failure_is_recorded():
  def fail():
    raise AlppiError("gamemoded.service not found")

  components = [
    Component("gamemoded", "gamemode", Action(fail)),
    Component("irqbalance", "irqbalance", Action(lambda: None)),
  ]

  result = orchestrator(FakeSource("pacman")).run(components)

  assert result.statuses.status("gamemoded") == "failed"
  assert result.statuses.details("gamemoded") == ["gamemoded.service not found"]
  assert result.statuses.status("irqbalance") == "installed"


def test_unrecoverable_configuration_aborts():
  provisioner = FakeProvisioner({"multilib": MutationError("/etc/pacman.conf", "error: bad section", rollback_failed = True)})
  components = [
    Component("gaming", "games", PackageGroup(PackageRequest("steam", repositories = "multilib"))),
    Component("productivity", "office", PackageGroup(PackageRequest("libreoffice-fresh"))),
  ]
  primary = FakeSource("pacman", available = ["steam", "libreoffice-fresh"])

  result = orchestrator(primary, provisioner = provisioner).run(components)

  assert result.aborted
  assert result.statuses.status("repository:multilib") == "failed"
  assert result.statuses.status("productivity") == "not-attempted"
  assert primary.installed == []


def test_rejected_review_skips_package():
  primary = FakeSource("pacman")
  secondary = FakeSource("yay", "secondary", available = ["a", "b"], definitions = {"a": "pkgname=a", "b": "pkgname=b"})
  reviewed: list[tuple[str, str]] = []

  def reviewer(package: str, definition: str) -> bool:
    reviewed.append((package, definition))
    return package == "a"

  component = Component("aur", "AUR packages", PackageGroup(AurPackages("a", "b")))
  result = orchestrator(primary, secondary, reviewer = reviewer).run([component])

  assert reviewed == [("a", "pkgname=a"), ("b", "pkgname=b")]
  assert secondary.installed == ["a"]
  assert result.statuses.status("aur") == "partially-installed"
  assert "skipped b: rejected during build definition review" in result.statuses.details("aur")


def test_all_packages_rejected():
  secondary = FakeSource("yay", "secondary", available = ["a"], definitions = {"a": "pkgname=a"})
  component = Component("aur", "AUR packages", PackageGroup(AurPackages("a")))
  result = orchestrator(FakeSource("pacman"), secondary, reviewer = lambda package, definition: False).run([component])
  assert result.statuses.status("aur") == "skipped"
  assert secondary.installed == []


def test_missing_build_definition_does_not_block():
  secondary = FakeSource("yay", "secondary", available = ["a"])
  component = Component("aur", "AUR packages", PackageGroup(AurPackages("a")))
  result = orchestrator(FakeSource("pacman"), secondary, reviewer = lambda package, definition: False).run([component])
  assert result.statuses.status("aur") == "installed"


def test_secondary_source_is_only_checked_when_needed():
  safety = FakeSafety()
  secondary = FakeSource("yay", "secondary")
  orchestrator(FakeSource("pacman", available = ["a"]), secondary, safety = safety).run([
    Component("plain", "plain", PackageGroup(PackageRequest("a"))),
  ])
  orchestrator(FakeSource("pacman"), secondary, safety = safety).run([
    Component("aur", "aur", PackageGroup(AurPackages("b"))),
  ])
  assert safety.calls == [False, True]


def test_cleanup():
  primary = FakeSource("pacman", orphans = ["old-lib"])
  secondary = FakeSource("yay", "secondary")
  prompts: list[str] = []

  def confirm(message: str) -> bool:
    prompts.append(message)
    return True

  orchestrator(primary, secondary, confirm = confirm).run([])

  assert primary.removed == ["old-lib"]
  assert primary.cache_cleared == 1
  assert secondary.cache_cleared == 1
  assert prompts == ["remove orphaned packages: old-lib", "clean package caches"]


def test_cleanup_can_be_declined_or_disabled():
  primary = FakeSource("pacman", orphans = ["old-lib"])
  orchestrator(primary, confirm = lambda message: False).run([])
  orchestrator(primary, remove_orphans = False, clean_cache = False).run([])
  assert primary.removed == []
  assert primary.cache_cleared == 0


@pytest.mark.parametrize("installed, failed, unavailable, skipped, expected", [
  (["a"], 0, [], {}, "installed"),
  (["a"], 1, [], {}, "partially-installed"),
  (["a"], 0, ["b"], {}, "partially-installed"),
  (["a"], 0, [], {"b": "rejected"}, "partially-installed"),
  ([], 1, [], {}, "failed"),
  ([], 0, ["b"], {"c": "rejected"}, "failed"),
  ([], 0, [], {"b": "rejected"}, "skipped"),
  ([], 0, [], {}, "skipped"),
])
def test_group_status(installed, failed, unavailable, skipped, expected):
  errors = [InstallError(f"pkg{idx}", "") for idx in range(failed)]
  assert InstallationOrchestrator.group_status(installed, errors, unavailable, skipped) == expected
