from alppi.backup import BackupStore
from alppi.errors import AlppiError, MutationError, ProvisionError, ResolutionError, SafetyCheckError, ValidationError
from alppi.model import Action, AurPackages, Component, ComponentStatusMap, PackageGroup, PackageRequest, RepositorySpec
from alppi.mutator import ConfigMutator
from alppi.orchestrator import InstallationOrchestrator, RunResult
from alppi.presets import Presets
from alppi.provisioner import RepositoryProvisioner
from alppi.resolver import PackageResolver
from alppi.retry import RetryRunner
from alppi.validator import Validator
