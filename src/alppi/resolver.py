from __future__ import annotations

from typing import Sequence

from alppi.errors import ResolutionError
from alppi.managers.pacman import PackageSource
from alppi.model import PackageRequest, ResolvedSet
from alppi.utils.logging import logger


class PackageResolver:
  """Sorts requested packages into the source they will be installed from. The primary source
  is authoritative: whenever a package is available there, it is installed from there, even if
  the request prefers the secondary source."""
  primary: PackageSource
  secondary: PackageSource | None

  def __init__(self, primary: PackageSource, secondary: PackageSource | None = None):
    self.primary = primary
    self.secondary = secondary

  def resolve(self, requests: Sequence[PackageRequest]) -> ResolvedSet:
    result = ResolvedSet()
    for request in requests:
      for package in request.packages:
        if package in result.owners:
          continue  # requested by multiple groups; the first request owns it
        result.owners[package] = request
        if self.primary.is_available(package):
          result.primary.append(package)
        elif self.secondary is not None and self.secondary.is_available(package):
          if request.source == "primary":
            logger.info(f"{package} not found in {self.primary.name} repositories, using {self.secondary.name}")
          result.secondary.append(package)
        else:
          logger.warn(str(ResolutionError(package)))
          result.unavailable.append(package)
    return result
