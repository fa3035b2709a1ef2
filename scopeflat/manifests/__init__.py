"""Package manifest description, caching and module resolution."""

from .cache import ManifestCache
from .describe import ManifestDescriber, parse_description
from .resolver import ManifestResolver, ModuleIndex, hash_manifest

__all__ = [
    "ManifestCache",
    "ManifestDescriber",
    "ManifestResolver",
    "ModuleIndex",
    "hash_manifest",
    "parse_description",
]
