"""Ordered pipeline stages, each selected per job by an explicit predicate."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence, Tuple

from .models import BundleJob, Format, Target


class StageKind(str, Enum):
    REPLACE = "replace"
    TRANSPILE = "transpile"
    JSON = "json"
    YAML = "yaml"
    MINIFY = "minify"
    EXECUTABLE = "executable"


TRANSFORM_STAGES = frozenset({StageKind.REPLACE, StageKind.TRANSPILE, StageKind.JSON, StageKind.YAML})
"""Stages handed to the bundler while building the module graph."""


@dataclass(frozen=True, slots=True)
class Stage:
    kind: StageKind
    applies: Callable[[BundleJob], bool]


def always(job: BundleJob) -> bool:
    return True


def should_minify(job: BundleJob) -> bool:
    """UMD bundles, CLI binaries and ``*.min.*`` destinations are minified."""

    return job.format is Format.UMD or job.target is Target.CLI or ".min." in job.output.name


def is_executable(job: BundleJob) -> bool:
    return job.target is Target.CLI


DEFAULT_STAGES: Tuple[Stage, ...] = (
    Stage(StageKind.REPLACE, always),
    Stage(StageKind.TRANSPILE, always),
    Stage(StageKind.JSON, always),
    Stage(StageKind.YAML, always),
    Stage(StageKind.MINIFY, should_minify),
    Stage(StageKind.EXECUTABLE, is_executable),
)


@dataclass(frozen=True, slots=True)
class StageSelection:
    """Stages that apply to one job, in pipeline order."""

    kinds: Tuple[StageKind, ...]

    def __contains__(self, kind: object) -> bool:
        return kind in self.kinds

    @property
    def transforms(self) -> Tuple[StageKind, ...]:
        return tuple(kind for kind in self.kinds if kind in TRANSFORM_STAGES)


def select_stages(job: BundleJob, stages: Sequence[Stage] = DEFAULT_STAGES) -> StageSelection:
    return StageSelection(kinds=tuple(stage.kind for stage in stages if stage.applies(job)))
