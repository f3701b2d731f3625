from __future__ import annotations

from contextlib import nullcontext
from typing import Callable, Sequence, TypeAlias

from alppi.errors import AlppiError, InstallError, MutationError, ResolutionError, SafetyCheckError
from alppi.heartbeat import PrivilegeHeartbeat
from alppi.managers.pacman import PackageSource
from alppi.model import *
from alppi.provisioner import RepositoryProvisioner
from alppi.resolver import PackageResolver
from alppi.safety import SafetyChecks
from alppi.utils.logging import logger

Reviewer: TypeAlias = Callable[[str, str], bool]
Confirm: TypeAlias = Callable[[str], bool]


class RunResult:
  stage: Stage
  statuses: ComponentStatusMap
  abort_reason: AlppiError | None

  def __init__(self, stage: Stage, statuses: ComponentStatusMap, abort_reason: AlppiError | None = None):
    self.stage = stage
    self.statuses = statuses
    self.abort_reason = abort_reason

  @property
  def aborted(self) -> bool:
    return self.stage == "aborted"


class ComponentPlan:
  """Everything the installation stage needs to know about a single component."""
  component: Component
  resolved: ResolvedSet
  skipped: dict[str, str]  # package => reason

  def __init__(self, component: Component, resolved: ResolvedSet | None = None, skipped: dict[str, str] | None = None):
    self.component = component
    self.resolved = resolved or ResolvedSet()
    self.skipped = skipped or {}


class InstallationOrchestrator:
  """Runs the whole pipeline:
  safety-checks -> provisioning -> resolution -> installation -> cleanup -> done.
  Only failing safety checks and an edit of pacman.conf that could not be rolled back abort
  the run; every other failure is recorded for the affected component and the run continues."""
  safety: SafetyChecks
  provisioner: RepositoryProvisioner
  resolver: PackageResolver
  primary: PackageSource
  secondary: PackageSource | None
  repositories: dict[str, RepositorySpec]
  heartbeat: PrivilegeHeartbeat | None
  reviewer: Reviewer | None
  confirm: Confirm
  remove_orphans: bool
  clean_cache: bool
  stage: Stage

  def __init__(
    self,
    safety: SafetyChecks,
    provisioner: RepositoryProvisioner,
    resolver: PackageResolver,
    primary: PackageSource,
    secondary: PackageSource | None = None,
    repositories: Sequence[RepositorySpec] = (),
    heartbeat: PrivilegeHeartbeat | None = None,
    reviewer: Reviewer | None = None,
    confirm: Confirm = lambda message: True,
    remove_orphans: bool = True,
    clean_cache: bool = True,
  ):
    self.safety = safety
    self.provisioner = provisioner
    self.resolver = resolver
    self.primary = primary
    self.secondary = secondary
    self.repositories = {spec.name: spec for spec in repositories}
    self.heartbeat = heartbeat
    self.reviewer = reviewer
    self.confirm = confirm
    self.remove_orphans = remove_orphans
    self.clean_cache = clean_cache
    self.stage = "init"

  def run(self, components: Sequence[Component]) -> RunResult:
    statuses = ComponentStatusMap()
    self.stage = "init"
    with self.heartbeat if self.heartbeat is not None else nullcontext():
      try:
        self.transition("safety-checks")
        self.safety.run_all(need_secondary = self.needs_secondary(components))

        self.transition("provisioning")
        failed_repositories = self.provision(components, statuses)

        self.transition("resolution")
        plans = [self.plan(component, failed_repositories) for component in components]

        self.transition("installation")
        for plan in plans:
          self.install(plan, statuses)

        self.transition("cleanup")
        self.cleanup()

        self.transition("done")
        return RunResult(self.stage, statuses)
      except SafetyCheckError as e:
        return self.abort(e, statuses)
      except MutationError as e:
        if not e.rollback_failed:
          raise
        return self.abort(e, statuses)

  def transition(self, stage: Stage):
    self.stage = stage
    logger.info(f"stage: {stage}")

  def abort(self, error: AlppiError, statuses: ComponentStatusMap) -> RunResult:
    for line in error.details():
      logger.error(line)
    self.stage = "aborted"
    return RunResult(self.stage, statuses, error)

  def needs_secondary(self, components: Sequence[Component]) -> bool:
    return self.secondary is not None and any(
      request.source == "secondary"
      for component in components if isinstance(component.kind, PackageGroup)
      for request in component.kind.requests
    )

  def required_repositories(self, components: Sequence[Component]) -> list[str]:
    names = [*self.primary.repositories]
    if self.needs_secondary(components) and self.secondary is not None:
      names += self.secondary.repositories
    for component in components:
      names += component.required_repositories()
    return list(dict.fromkeys(names))

  def provision(self, components: Sequence[Component], statuses: ComponentStatusMap) -> set[str]:
    """Enables all repositories needed by the selected components; returns the failed ones."""
    failed: set[str] = set()
    for name in self.required_repositories(components):
      component_name = repository_component(name)
      spec = self.repositories.get(name, None)
      if spec is None:
        statuses.record(component_name, "failed", f"no repository definition found for [{name}]")
        failed.add(name)
        continue
      try:
        changed = self.provisioner.enable(spec)
        statuses.record(component_name, "installed", "enabled" if changed else "already enabled")
      except MutationError as e:
        statuses.record(component_name, "failed", e.details())
        failed.add(name)
        if e.rollback_failed:
          raise
      except (AlppiError, OSError) as e:
        details = e.details() if isinstance(e, AlppiError) else [str(e)]
        statuses.record(component_name, "failed", details)
        for line in details:
          logger.error(line)
        failed.add(name)
    return failed

  def plan(self, component: Component, failed_repositories: set[str]) -> ComponentPlan:
    blocked = [name for name in component.repositories if name in failed_repositories]
    if not isinstance(component.kind, PackageGroup):
      skipped = {"*": f"required repository failed: {', '.join(blocked)}"} if blocked else {}
      return ComponentPlan(component, skipped = skipped)

    skipped: dict[str, str] = {}
    requests: list[PackageRequest] = []
    for request in component.kind.requests:
      request_blocked = [*blocked, *(name for name in request.repositories if name in failed_repositories)]
      if request.source == "secondary" and self.secondary is not None:
        request_blocked += [name for name in self.secondary.repositories if name in failed_repositories]
      if request_blocked:
        reason = f"required repository failed: {', '.join(dict.fromkeys(request_blocked))}"
        skipped.update({package: reason for package in request.packages})
      else:
        requests.append(request)

    resolved = self.resolver.resolve(requests)
    if self.secondary is not None:
      secondary_blocked = [name for name in self.secondary.repositories if name in failed_repositories]
      if secondary_blocked:
        for package in list(resolved.secondary):
          resolved.secondary.remove(package)
          skipped[package] = f"required repository failed: {', '.join(secondary_blocked)}"
    return ComponentPlan(component, resolved, skipped)

  def install(self, plan: ComponentPlan, statuses: ComponentStatusMap):
    component = plan.component
    logger.info(f"installing {component.name}: {component.description}")
    if isinstance(component.kind, Action):
      if plan.skipped:
        statuses.record(component.name, "skipped", list(plan.skipped.values()))
        return
      try:
        component.kind.execute()
        statuses.record(component.name, "installed")
      except Exception as e:
        details = e.details() if isinstance(e, AlppiError) else [f"{e.__class__.__name__}: {e}"]
        statuses.record(component.name, "failed", details)
      return

    installed: list[str] = []
    failed: list[InstallError] = []
    skipped = dict(plan.skipped)

    for package in plan.resolved.primary:
      result = self.primary.install(package)
      if result.success:
        installed.append(package)
      else:
        failed.append(InstallError(package, result.output))

    for package in plan.resolved.secondary:
      assert self.secondary is not None, "package resolved to secondary source, but none is configured"
      request = plan.resolved.owners[package]
      if request.review_required and not self.review(package):
        skipped[package] = "rejected during build definition review"
        continue
      result = self.secondary.install(package)
      if result.success:
        installed.append(package)
      else:
        failed.append(InstallError(package, result.output))

    unavailable = list(plan.resolved.unavailable)
    status = self.group_status(installed, failed, unavailable, skipped)
    details: list[str] = []
    if installed:
      details.append(f"installed: {', '.join(installed)}")
    for package in unavailable:
      details.append(str(ResolutionError(package)))
    for error in failed:
      details += error.details()
    for package, reason in skipped.items():
      details.append(f"skipped {package}: {reason}")
    statuses.record(component.name, status, details)

  def review(self, package: str) -> bool:
    assert self.secondary is not None
    if self.reviewer is None:
      return True
    definition = self.secondary.build_definition(package)
    if definition is None:
      logger.warn(f"could not retrieve build definition for {package}, proceeding without review")
      return True
    return self.reviewer(package, definition)

  @staticmethod
  def group_status(installed: list[str], failed: list[InstallError], unavailable: list[str], skipped: dict[str, str]) -> ComponentStatus:
    missing = len(failed) + len(unavailable) + len(skipped)
    if installed and not missing:
      return "installed"
    if installed:
      return "partially-installed"
    if failed or unavailable:
      return "failed"
    return "skipped"

  def cleanup(self):
    """Best effort: nothing in here changes the outcome of the run."""
    if self.remove_orphans:
      try:
        self.remove_orphaned_packages()
      except Exception as e:
        logger.warn(f"orphan removal failed: {e}")
    if self.clean_cache:
      try:
        self.clear_caches()
      except Exception as e:
        logger.warn(f"cache cleaning failed: {e}")

  def remove_orphaned_packages(self):
    orphans = self.primary.list_orphans()
    if not orphans:
      logger.info("no orphaned packages found")
      return
    if not self.confirm(f"remove orphaned packages: {' '.join(orphans)}"):
      logger.info("skipping removal of orphaned packages")
      return
    for package in orphans:
      result = self.primary.remove([package])
      if not result.success and self.secondary is not None:
        result = self.secondary.remove([package])
      if result.success:
        logger.info(f"removed orphaned package {package}")
      else:
        logger.warn(f"failed to remove orphaned package {package}: {result.output}")

  def clear_caches(self):
    if not self.confirm("clean package caches"):
      logger.info("skipping cache cleaning")
      return
    for source in [self.primary, self.secondary]:
      if source is None:
        continue
      result = source.clear_cache()
      if result.success:
        logger.info(f"{source.name} cache cleaned")
      else:
        logger.warn(f"failed to clean {source.name} cache: {result.output}")
