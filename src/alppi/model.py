from __future__ import annotations

from typing import Any, Callable, Iterable, Literal, Sequence, TypeAlias

Source: TypeAlias = Literal["primary", "secondary"]
ComponentStatus: TypeAlias = Literal["not-attempted", "installed", "skipped", "failed", "partially-installed"]
Stage: TypeAlias = Literal["init", "safety-checks", "provisioning", "resolution", "installation", "cleanup", "done", "aborted"]


class RepositorySpec:
  """Static description of a pacman repository section and the trust material it needs."""
  name: str
  include: str
  key_id: str | None
  key_server: str
  bootstrap_urls: Sequence[str]
  installed_marker: str | None

  def __init__(
    self,
    name: str,
    include: str = "/etc/pacman.d/mirrorlist",
    key_id: str | None = None,
    key_server: str = "keyserver.ubuntu.com",
    bootstrap_urls: Sequence[str] | None = None,
    installed_marker: str | None = None,
  ):
    self.name = name
    self.include = include
    self.key_id = key_id
    self.key_server = key_server
    self.bootstrap_urls = list(bootstrap_urls or [])
    self.installed_marker = installed_marker

  def __str__(self):
    return f"RepositorySpec('{self.name}')"

  def __eq__(self, other: Any) -> bool:
    return isinstance(other, RepositorySpec) and self.name == other.name

  def __hash__(self):
    return hash(self.name)


class PackageRequest:
  packages: Sequence[str]
  source: Source
  review_required: bool
  repositories: Sequence[str]

  def __init__(
    self,
    *packages: str,
    source: Source = "primary",
    review_required: bool = False,
    repositories: Iterable[str] | str | None = None,
  ):
    self.packages = list(dict.fromkeys(packages))
    self.source = source
    self.review_required = review_required
    self.repositories = [repositories] if isinstance(repositories, str) else list(repositories or [])

  def __str__(self):
    return f"PackageRequest({', '.join(self.packages)}, source = '{self.source}')"


# noinspection PyPep8Naming
def AurPackages(*packages: str, review_required: bool = True) -> PackageRequest:
  return PackageRequest(*packages, source = "secondary", review_required = review_required)


class PackageGroup:
  requests: Sequence[PackageRequest]

  def __init__(self, *requests: PackageRequest):
    self.requests = list(requests)

  def packages(self) -> list[str]:
    return list(dict.fromkeys(pkg for request in self.requests for pkg in request.packages))


class Action:
  """An arbitrary installation step that is not expressed as a list of packages."""
  execute: Callable[[], Any]

  def __init__(self, execute: Callable[[], Any]):
    self.execute = execute


class Component:
  """A logical unit that can be selected for installation and has its own status in the report."""
  name: str
  description: str
  kind: PackageGroup | Action
  repositories: Sequence[str]

  def __init__(
    self,
    name: str,
    description: str,
    kind: PackageGroup | Action,
    repositories: Iterable[str] | str | None = None,
  ):
    self.name = name
    self.description = description
    self.kind = kind
    self.repositories = [repositories] if isinstance(repositories, str) else list(repositories or [])

  def __str__(self):
    return f"Component('{self.name}')"

  def required_repositories(self) -> list[str]:
    """All repositories this component depends on, including the ones of its package requests."""
    names = list(self.repositories)
    if isinstance(self.kind, PackageGroup):
      names += [repo for request in self.kind.requests for repo in request.repositories]
    return list(dict.fromkeys(names))


class ComponentOutcome:
  status: ComponentStatus
  details: list[str]

  def __init__(self, status: ComponentStatus, details: list[str] | str | None = None):
    self.status = status
    self.details = [details] if isinstance(details, str) else (details or [])


class ComponentStatusMap:
  """Status of every component touched during a run. Each component gets recorded exactly once."""
  outcomes: dict[str, ComponentOutcome]

  def __init__(self):
    self.outcomes = {}

  def record(self, name: str, status: ComponentStatus, details: list[str] | str | None = None):
    assert name not in self.outcomes, f"status for component '{name}' has already been recorded"
    self.outcomes[name] = ComponentOutcome(status, details)

  def status(self, name: str) -> ComponentStatus:
    outcome = self.outcomes.get(name, None)
    return outcome.status if outcome is not None else "not-attempted"

  def details(self, name: str) -> list[str]:
    outcome = self.outcomes.get(name, None)
    return outcome.details if outcome is not None else []

  def names(self) -> list[str]:
    return list(self.outcomes.keys())

  def __contains__(self, name: str) -> bool:
    return name in self.outcomes


class ResolvedSet:
  """Result of a package resolution. The three buckets are disjoint and together contain
  every requested package. owners maps every package to the request that introduced it."""
  primary: list[str]
  secondary: list[str]
  unavailable: list[str]
  owners: dict[str, PackageRequest]

  def __init__(self):
    self.primary = []
    self.secondary = []
    self.unavailable = []
    self.owners = {}

  def bucket_of(self, package: str) -> Literal["primary", "secondary", "unavailable"] | None:
    if package in self.primary: return "primary"
    if package in self.secondary: return "secondary"
    if package in self.unavailable: return "unavailable"
    return None

  def all_packages(self) -> list[str]:
    return [*self.primary, *self.secondary, *self.unavailable]


def repository_component(name: str) -> str:
  return f"repository:{name}"
