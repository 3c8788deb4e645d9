"""Bundler collaborators."""

from .base import BuildRequest, Bundler, ModuleCache, ModuleGraph, WriteOptions, WrittenArtifact
from .esbuild import EsbuildBundler

__all__ = [
    "BuildRequest",
    "Bundler",
    "EsbuildBundler",
    "ModuleCache",
    "ModuleGraph",
    "WriteOptions",
    "WrittenArtifact",
]
