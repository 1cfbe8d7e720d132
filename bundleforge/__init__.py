"""bundleforge: post-build relocation and verification for macOS app bundles.

Turns a freshly built, absolute-path-linked ``.app`` into a portable,
ad-hoc signed disk image:

  - resolve a compatible Qt kit and refuse layouts that break deployment
  - build the app bundle with CMake
  - run macdeployqt (its exit status is advisory)
  - rewrite residual absolute references to bundled libraries
  - sign, then prove by static inspection that no absolute leaks remain
  - stage and pack the bundle into a versioned disk image
"""

__version__ = "0.2.0"

from bundleforge.core.orchestrator import Orchestrator
from bundleforge.models.config import BuildConfig

__all__ = ["Orchestrator", "BuildConfig", "__version__"]
