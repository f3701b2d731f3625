from alppi.managers.pacman import AurHelper, PackageSource, PacmanSource
from alppi.managers.pacman_key import PacmanKeyring
