"""Schema exports for preppy."""

from .manifest import PackageManifest, Person

__all__ = ["PackageManifest", "Person"]
