from __future__ import annotations

from pathlib import Path

from scripts.module_sanity import check_modules, main

ROOT = Path(__file__).resolve().parents[1]

VALID = """\
name: {name}
title: Tool
version: 0.1.0
description: A tool.
category: Finance
standard_version: "1.0"
entrypoints:
  api: modules.{name}.tool.app:app
mount: {mount}
"""


def _write(root: Path, name: str, body: str) -> None:
    (root / name).mkdir()
    (root / name / "module.yaml").write_text(body, encoding="utf-8")


def test_repository_manifests_pass(capsys) -> None:
    assert main(ROOT / "modules") == 0
    assert "passed" in capsys.readouterr().out


def test_missing_fields_and_mount_clash(tmp_path) -> None:
    _write(tmp_path, "alpha", VALID.format(name="alpha", mount="/shared"))
    _write(tmp_path, "beta", VALID.format(name="beta", mount="/shared/"))
    _write(tmp_path, "gamma", "name: gamma\ncategory: Finance\nentrypoints:\n  api: elsewhere.app\n")

    errors = check_modules(tmp_path)

    assert "beta: mount '/shared' duplicates alpha" in errors
    assert "gamma: missing title" in errors
    assert "gamma: standard_version must be '1.0'" in errors
    assert "gamma: entrypoints.api must be module:app" in errors
    assert not any(issue.startswith("alpha") for issue in errors)


def test_invalid_yaml_is_reported(tmp_path, capsys) -> None:
    _write(tmp_path, "bad", "name: [unclosed\n")

    assert main(tmp_path) == 1
    assert "bad: invalid YAML" in capsys.readouterr().out
