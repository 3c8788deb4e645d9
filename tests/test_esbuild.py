from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Dict, List, Sequence

import pytest

from preppy.bundler import esbuild as esbuild_module
from preppy.bundler.base import BuildRequest, ModuleCache, WriteOptions
from preppy.bundler.esbuild import EsbuildBundler, UMD_FOOTER
from preppy.errors import BundleFailure, BundlerNotFoundError
from preppy.externals import ExternalClassifier
from preppy.models import BuildConstants, Format, Target
from preppy.stages import StageKind

from .helpers import RecordingReporter

TRANSFORMS = (StageKind.REPLACE, StageKind.TRANSPILE, StageKind.JSON, StageKind.YAML)


class FakeEsbuild:
    """Stands in for the esbuild executable, honouring --metafile and --outfile."""

    def __init__(self, root: Path, *, stderr: str = "", write_stderr: str = "", returncode: int = 0) -> None:
        self.root = root
        self.stderr = stderr
        self.write_stderr = write_stderr
        self.returncode = returncode
        self.calls: List[List[str]] = []
        self.cwds: List[str] = []
        self.staged: Dict[str, str] = {}
        self.meta: Dict[str, object] = {
            "inputs": {
                "src/util.js": {"bytes": 10, "imports": []},
                "src/index.js": {
                    "bytes": 20,
                    "imports": [
                        {"path": "src/util.js", "kind": "import-statement", "original": "./util"},
                        {"path": "lodash", "kind": "import-statement", "external": True, "original": "lodash"},
                        {"path": "fs", "kind": "require-call", "external": True},
                    ],
                },
            },
            "outputs": {},
        }

    def __call__(self, cmd: Sequence[str], **kwargs: object) -> subprocess.CompletedProcess:
        self.calls.append(list(cmd))
        self.cwds.append(str(kwargs["cwd"]))
        options = _options(cmd)
        analysis = "--metafile" in options
        if self.returncode == 0:
            if analysis:
                Path(options["--metafile"]).write_text(json.dumps(self.meta), encoding="utf-8")
            else:
                cwd = Path(str(kwargs["cwd"]))
                self.staged = {
                    str(path.relative_to(cwd)): path.read_text(encoding="utf-8")
                    for path in cwd.rglob("*")
                    if path.is_file() and cwd != self.root
                }
            banner = options.get("--banner:js", "")
            footer = options.get("--footer:js", "")
            Path(options["--outfile"]).write_text(f"{banner}\nbundled();\n{footer}", encoding="utf-8")
        stderr = self.stderr if analysis or self.returncode else self.write_stderr
        return subprocess.CompletedProcess(cmd, self.returncode, "", stderr)


def _options(cmd: Sequence[str]) -> Dict[str, str]:
    options: Dict[str, str] = {}
    for arg in cmd[1:]:
        if arg.startswith("--") and "=" in arg:
            key, value = arg.split("=", 1)
            options[key] = value
    return options


def _request(root: Path, cache: ModuleCache, target: Target = Target.LIB, events=None) -> BuildRequest:
    entry = root / "src/index.js"
    return BuildRequest(
        input=entry,
        target=target,
        cache=cache,
        classifier=ExternalClassifier(entry),
        transforms=TRANSFORMS,
        constants=BuildConstants(name="foo", version="1.0.0", target=target),
        events=events,
    )


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    (tmp_path / "src").mkdir()
    (tmp_path / "src/index.js").write_text("import './util'\n", encoding="utf-8")
    (tmp_path / "src/util.js").write_text("export default 1\n", encoding="utf-8")
    return tmp_path


def test_build_walks_metafile(source_tree: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeEsbuild(source_tree, stderr='▲ [WARNING] "x" is not exported [import-is-undefined]\n')
    monkeypatch.setattr(esbuild_module.subprocess, "run", fake)
    reporter = RecordingReporter()
    bundler = EsbuildBundler("esbuild", root=source_tree)

    graph = bundler.build(_request(source_tree, ModuleCache(), events=reporter))

    assert graph.modules == (source_tree / "src/util.js", source_tree / "src/index.js")
    assert graph.externals == ("fs", "lodash")
    assert [str(warning) for warning in graph.warnings] == ['"x" is not exported [import-is-undefined]']
    assert [name for name, _ in reporter.events] == ["loaded", "transformed", "loaded", "transformed"]

    cmd = fake.calls[0]
    assert cmd[:3] == ["esbuild", str(source_tree / "src/index.js"), "--bundle"]
    assert "--packages=external" in cmd
    assert "--platform=neutral" in cmd
    assert '--define:process.env.NAME="foo"' in cmd
    assert '--define:process.env.TARGET="lib"' in cmd
    assert "--loader:.json=json" in cmd


def test_build_reuses_warm_cache(source_tree: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeEsbuild(source_tree)
    monkeypatch.setattr(esbuild_module.subprocess, "run", fake)
    bundler = EsbuildBundler("esbuild", root=source_tree)
    cache = ModuleCache()

    first = bundler.build(_request(source_tree, cache))
    second = bundler.build(_request(source_tree, cache))
    assert second is first
    assert len(fake.calls) == 1
    assert cache.hits == 1

    bundler.build(_request(source_tree, cache, target=Target.NODE))
    assert len(fake.calls) == 2


def test_cache_invalidated_when_module_changes(source_tree: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeEsbuild(source_tree)
    monkeypatch.setattr(esbuild_module.subprocess, "run", fake)
    bundler = EsbuildBundler("esbuild", root=source_tree)
    cache = ModuleCache()

    bundler.build(_request(source_tree, cache))
    (source_tree / "src/util.js").write_text("export default 'changed, and longer'\n", encoding="utf-8")
    bundler.build(_request(source_tree, cache))
    assert len(fake.calls) == 2


def test_fatal_errors_raise_bundle_failure(source_tree: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeEsbuild(
        source_tree,
        stderr='✘ [ERROR] Expected ";" but found "}"\n\n    src/index.js:1:4:\n',
        returncode=1,
    )
    monkeypatch.setattr(esbuild_module.subprocess, "run", fake)
    bundler = EsbuildBundler("esbuild", root=source_tree)

    with pytest.raises(BundleFailure, match='Expected ";"') as excinfo:
        bundler.build(_request(source_tree, ModuleCache()))
    assert excinfo.value.input_path == source_tree / "src/index.js"


def test_missing_executable(source_tree: Path) -> None:
    with pytest.raises(BundlerNotFoundError):
        EsbuildBundler(None, root=source_tree).build(_request(source_tree, ModuleCache()))


def test_write_umd_wraps_commonjs(source_tree: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeEsbuild(source_tree)
    monkeypatch.setattr(esbuild_module.subprocess, "run", fake)
    bundler = EsbuildBundler("esbuild", root=source_tree)
    graph = bundler.build(_request(source_tree, ModuleCache()))
    destination = source_tree / "dist/foo.umd.js"

    code = bundler.write(
        graph,
        WriteOptions(
            format=Format.UMD,
            banner="/*! foo v1.0.0 */",
            sourcemap=True,
            destination=destination,
            minify=True,
            global_name="foo",
        ),
    ).code

    cmd = fake.calls[-1]
    assert "--format=cjs" in cmd
    assert "--minify" in cmd
    assert "--sourcemap" in cmd
    assert f"--outfile={destination}" in cmd
    assert code.startswith("/*! foo v1.0.0 */\n(function (root, factory) {")
    assert 'root["foo"] = m.exports;' in code
    assert code.rstrip().endswith(UMD_FOOTER)
    assert destination.read_text(encoding="utf-8") == code


def test_write_esm_for_browser(source_tree: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeEsbuild(source_tree)
    monkeypatch.setattr(esbuild_module.subprocess, "run", fake)
    bundler = EsbuildBundler("esbuild", root=source_tree)
    graph = bundler.build(_request(source_tree, ModuleCache(), target=Target.BROWSER))

    code = bundler.write(
        graph,
        WriteOptions(format=Format.ESM, banner="/*! foo v1.0.0 */", sourcemap=False, destination=source_tree / "lib/b.js"),
    ).code

    cmd = fake.calls[-1]
    assert "--format=esm" in cmd
    assert "--platform=browser" in cmd
    assert "--minify" not in cmd
    assert not any(arg.startswith("--footer:js") for arg in cmd)
    assert code.startswith("/*! foo v1.0.0 */\nbundled();")


def test_write_pass_warnings_are_returned(source_tree: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeEsbuild(
        source_tree,
        write_stderr='▲ [WARNING] "import.meta" is not available with the "cjs" output format [empty-import-meta]\n',
    )
    monkeypatch.setattr(esbuild_module.subprocess, "run", fake)
    bundler = EsbuildBundler("esbuild", root=source_tree)
    graph = bundler.build(_request(source_tree, ModuleCache()))
    assert graph.warnings == ()

    artifact = bundler.write(
        graph,
        WriteOptions(format=Format.CJS, banner="", sourcemap=False, destination=source_tree / "lib/index.js"),
    )

    assert [str(warning) for warning in artifact.warnings] == [
        '"import.meta" is not available with the "cjs" output format [empty-import-meta] (cjs)'
    ]
    assert artifact.warnings[0].source == source_tree / "src/index.js"
    assert fake.cwds == [str(source_tree), str(source_tree)]


def test_classifier_disagreement_is_reported(source_tree: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeEsbuild(source_tree)
    imports = fake.meta["inputs"]["src/index.js"]["imports"]  # type: ignore[index]
    imports.append({"path": "src/vendor/index.js", "kind": "import-statement", "original": "vendor"})
    monkeypatch.setattr(esbuild_module.subprocess, "run", fake)

    graph = EsbuildBundler("esbuild", root=source_tree).build(_request(source_tree, ModuleCache()))

    assert "vendor" in graph.externals
    assert [str(warning) for warning in graph.warnings] == ["'vendor' was bundled by esbuild contrary to classification"]


@pytest.fixture
def yaml_tree(source_tree: Path) -> Path:
    (source_tree / "package.json").write_text('{"name": "foo", "version": "1.0.0"}', encoding="utf-8")
    (source_tree / "src/index.js").write_text("import config from './config.yaml'\n", encoding="utf-8")
    (source_tree / "src/config.yaml").write_text("name: foo\nitems:\n  - 1\n  - two\n", encoding="utf-8")
    return source_tree


def _with_yaml_import(fake: FakeEsbuild) -> FakeEsbuild:
    inputs = fake.meta["inputs"]  # type: ignore[index]
    inputs["src/config.yaml"] = {"bytes": 30, "imports": []}
    inputs["src/index.js"]["imports"].append(
        {"path": "src/config.yaml", "kind": "import-statement", "original": "./config.yaml"}
    )
    return fake


def test_yaml_modules_are_bundled_as_json(yaml_tree: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _with_yaml_import(FakeEsbuild(yaml_tree))
    monkeypatch.setattr(esbuild_module.subprocess, "run", fake)
    bundler = EsbuildBundler("esbuild", root=yaml_tree)

    graph = bundler.build(_request(yaml_tree, ModuleCache()))
    assert yaml_tree / "src/config.yaml" in graph.modules
    assert "--loader:.yaml=text" in fake.calls[0]

    destination = yaml_tree / "lib/index.js"
    artifact = bundler.write(
        graph,
        WriteOptions(format=Format.CJS, banner="/*! foo v1.0.0 */", sourcemap=False, destination=destination),
    )

    cmd = fake.calls[-1]
    staging = Path(fake.cwds[-1])
    assert staging != yaml_tree
    assert cmd[1] == str(staging / "src/index.js")
    assert "--loader:.yaml=json" in cmd
    assert "--loader:.yml=json" in cmd
    assert f"--outfile={destination}" in cmd
    assert json.loads(fake.staged["src/config.yaml"]) == {"name": "foo", "items": [1, "two"]}
    assert fake.staged["src/index.js"] == "import config from './config.yaml'\n"
    assert "package.json" in fake.staged
    assert artifact.code.startswith("/*! foo v1.0.0 */")
    assert not staging.exists()


def test_invalid_yaml_module_fails_the_job(yaml_tree: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (yaml_tree / "src/config.yaml").write_text("items: [unclosed\n", encoding="utf-8")
    fake = _with_yaml_import(FakeEsbuild(yaml_tree))
    monkeypatch.setattr(esbuild_module.subprocess, "run", fake)
    bundler = EsbuildBundler("esbuild", root=yaml_tree)
    graph = bundler.build(_request(yaml_tree, ModuleCache()))

    with pytest.raises(BundleFailure, match="Invalid YAML module") as excinfo:
        bundler.write(
            graph,
            WriteOptions(format=Format.ESM, banner="", sourcemap=False, destination=yaml_tree / "lib/index.mjs"),
        )
    assert excinfo.value.input_path == yaml_tree / "src/config.yaml"
    assert len(fake.calls) == 1
