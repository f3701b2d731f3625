import pytest

from alppi.model import Action, AurPackages, Component, ComponentStatusMap, PackageGroup, PackageRequest, RepositorySpec


def test_status_is_recorded_once():
  statuses = ComponentStatusMap()
  statuses.record("gaming", "installed", "installed: steam")
  assert statuses.status("gaming") == "installed"
  assert statuses.details("gaming") == ["installed: steam"]
  with pytest.raises(AssertionError):
    statuses.record("gaming", "failed")


def test_unknown_component_is_not_attempted():
  statuses = ComponentStatusMap()
  assert statuses.status("zram") == "not-attempted"
  assert statuses.details("zram") == []
  assert "zram" not in statuses


def test_package_requests():
  request = PackageRequest("steam", "wine", "steam", repositories = "multilib")
  assert request.packages == ["steam", "wine"]
  assert request.repositories == ["multilib"]
  assert request.source == "primary"
  aur = AurPackages("goverlay")
  assert aur.source == "secondary"
  assert aur.review_required
  assert PackageGroup(request, PackageRequest("wine", "lutris")).packages() == ["steam", "wine", "lutris"]


def test_required_repositories():
  group = Component(
    "gaming",
    "games",
    PackageGroup(PackageRequest("steam", repositories = "multilib"), AurPackages("dxvk-bin")),
    repositories = ["chaotic-aur", "multilib"],
  )
  assert group.required_repositories() == ["chaotic-aur", "multilib"]
  assert Component("zram", "zram", Action(lambda: None)).required_repositories() == []


def test_repository_specs_compare_by_name():
  assert RepositorySpec("multilib") == RepositorySpec("multilib", include = "/other")
  assert len({RepositorySpec("multilib"), RepositorySpec("multilib")}) == 1
