from alppi.model import AurPackages, PackageRequest
from alppi.resolver import PackageResolver
from tests.fakes import FakeSource


def test_primary_wins_ties():
  primary = FakeSource("pacman", available = ["steam", "wine"])
  secondary = FakeSource("yay", "secondary", available = ["steam", "proton-ge-custom"])

  resolved = PackageResolver(primary, secondary).resolve([
    PackageRequest("steam", "wine"),
    AurPackages("proton-ge-custom"),
  ])

  assert resolved.primary == ["steam", "wine"]
  assert resolved.secondary == ["proton-ge-custom"]
  assert resolved.unavailable == []
  assert "steam" not in secondary.queries


def test_secondary_preference_still_checks_primary_first():
  primary = FakeSource("pacman", available = ["linux-zen"])
  secondary = FakeSource("yay", "secondary", available = ["linux-zen"])

  resolved = PackageResolver(primary, secondary).resolve([AurPackages("linux-zen")])

  assert resolved.primary == ["linux-zen"]
  assert resolved.secondary == []


def test_every_package_ends_up_in_exactly_one_bucket():
  primary = FakeSource("pacman", available = ["a"])
  secondary = FakeSource("yay", "secondary", available = ["b"])
  requests = [PackageRequest("a", "b", "c"), AurPackages("b", "d")]

  resolved = PackageResolver(primary, secondary).resolve(requests)

  assert sorted(resolved.all_packages()) == ["a", "b", "c", "d"]
  assert resolved.bucket_of("a") == "primary"
  assert resolved.bucket_of("b") == "secondary"
  assert resolved.bucket_of("c") == "unavailable"
  assert resolved.bucket_of("d") == "unavailable"
  assert resolved.owners["b"] is requests[0]


def test_without_secondary_source():
  resolved = PackageResolver(FakeSource("pacman", available = ["a"])).resolve([AurPackages("a", "b")])
  assert resolved.primary == ["a"]
  assert resolved.unavailable == ["b"]
