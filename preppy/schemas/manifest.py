"""Pydantic model describing the consumed subset of ``package.json``."""

from __future__ import annotations

import re
from pathlib import PurePosixPath, PureWindowsPath
from typing import Any, Dict, FrozenSet, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

_AUTHOR_PATTERN = re.compile(r"^\s*([^<(]*?)\s*(?:<([^>]*)>)?\s*(?:\(([^)]*)\))?\s*$")


class Person(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    url: Optional[str] = None

    model_config = ConfigDict(extra="ignore", frozen=True)


class PackageManifest(BaseModel):
    """Read-only view over the project's declared metadata."""

    name: str
    version: str
    author: Optional[Union[str, Person]] = None
    main: Optional[str] = None
    module: Optional[str] = None
    jsnext_main: Optional[str] = Field(default=None, alias="jsnext:main")
    umd: Optional[str] = None
    unpkg: Optional[str] = None
    browser: Optional[Union[str, Dict[str, Any]]] = Field(
        default=None,
        description="Browser bundle path. The object replacement-map form is not an output path.",
    )
    types: Optional[str] = None
    typings: Optional[str] = None
    bin: Optional[Union[str, Dict[str, str]]] = None
    dependencies: Dict[str, str] = Field(default_factory=dict)
    peer_dependencies: Dict[str, str] = Field(default_factory=dict, alias="peerDependencies")

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    @field_validator("main", "module", "jsnext_main", "umd", "unpkg", "types", "typings")
    @classmethod
    def _relative_path(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        _ensure_relative(value)
        return value

    @field_validator("browser")
    @classmethod
    def _relative_browser(cls, value: Optional[Union[str, Dict[str, Any]]]) -> Optional[Union[str, Dict[str, Any]]]:
        if isinstance(value, str):
            _ensure_relative(value)
        return value

    @field_validator("bin")
    @classmethod
    def _relative_bin(cls, value: Optional[Union[str, Dict[str, str]]]) -> Optional[Union[str, Dict[str, str]]]:
        if isinstance(value, str):
            _ensure_relative(value)
        elif isinstance(value, dict):
            for path in value.values():
                _ensure_relative(path)
        return value

    @property
    def author_name(self) -> Optional[str]:
        if isinstance(self.author, Person):
            return self.author.name or None
        if isinstance(self.author, str):
            match = _AUTHOR_PATTERN.match(self.author)
            name = match.group(1) if match else self.author.strip()
            return name or None
        return None

    @property
    def module_path(self) -> Optional[str]:
        return self.module or self.jsnext_main

    @property
    def umd_path(self) -> Optional[str]:
        return self.umd or self.unpkg

    @property
    def types_path(self) -> Optional[str]:
        return self.types or self.typings

    @property
    def browser_path(self) -> Optional[str]:
        return self.browser if isinstance(self.browser, str) else None

    @property
    def bin_path(self) -> Optional[str]:
        if isinstance(self.bin, str):
            return self.bin
        if isinstance(self.bin, dict) and self.bin:
            return next(iter(self.bin.values()))
        return None

    @property
    def dependency_names(self) -> FrozenSet[str]:
        return frozenset(self.dependencies) | frozenset(self.peer_dependencies)


def _ensure_relative(value: str) -> None:
    if PurePosixPath(value).is_absolute() or PureWindowsPath(value).is_absolute():
        raise ValueError(f"Manifest paths must be relative to the project root (got '{value}')")
