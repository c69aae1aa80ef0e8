"""Package identity, per-tier state and artifact handling.

- filename.py: ``name+version+branch+platform.zip`` artifact names
- models.py: Tier, Package, PackageState, PackageInstance and signatures
- archive.py: zip access and the dependencies.info manifest
- pom.py: pom.xml reader (import it directly, it depends on xpkg.dependency)
"""

from .filename import PackageFilename
from .models import Package, PackageInstance, PackageState, Tier, TierState

__all__ = [
    "Package",
    "PackageFilename",
    "PackageInstance",
    "PackageState",
    "Tier",
    "TierState",
]
