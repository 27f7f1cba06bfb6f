#!/usr/bin/env python3
from __future__ import annotations

from pathlib import Path
import sys
from typing import List

import yaml

from desk.registry import read_manifest

ROOT = Path(__file__).resolve().parents[1]

REQUIRED = ("title", "description", "category", "version")


def check_modules(modules_dir: Path) -> List[str]:
    """Return one message per manifest problem found under ``modules_dir``."""
    errors: List[str] = []
    mounts: dict[str, str] = {}
    names: set[str] = set()

    for module_dir in sorted(modules_dir.iterdir()):
        if not module_dir.is_dir() or not (module_dir / "module.yaml").exists():
            continue
        try:
            meta = read_manifest(module_dir)
        except yaml.YAMLError as exc:
            errors.append(f"{module_dir.name}: invalid YAML ({exc})")
            continue
        if meta is None:
            errors.append(f"{module_dir.name}: manifest needs a name")
            continue

        name = meta["name"]
        if name in names:
            errors.append(f"{module_dir.name}: duplicate name '{name}'")
        names.add(name)

        for key in REQUIRED:
            if not str(meta.get(key) or "").strip():
                errors.append(f"{module_dir.name}: missing {key}")

        if meta.get("category") != "Internal" and str(meta.get("standard_version") or "") != "1.0":
            errors.append(f"{module_dir.name}: standard_version must be '1.0'")

        entrypoints = meta.get("entrypoints") or {}
        api = entrypoints.get("api") if isinstance(entrypoints, dict) else None
        if meta.get("public", True) and meta["enabled"]:
            if not api:
                errors.append(f"{module_dir.name}: missing entrypoints.api")
            elif ":" not in str(api):
                errors.append(f"{module_dir.name}: entrypoints.api must be module:app")
            elif not str(api).startswith(f"modules.{module_dir.name}."):
                errors.append(f"{module_dir.name}: entrypoints.api points outside the module")

        mount = meta["mount"]
        if mount == "/":
            errors.append(f"{module_dir.name}: mount '/' is reserved")
        if " " in mount:
            errors.append(f"{module_dir.name}: mount contains spaces")
        if mount in mounts:
            errors.append(f"{module_dir.name}: mount '{mount}' duplicates {mounts[mount]}")
        else:
            mounts[mount] = name

    return errors


def main(modules_dir: Path | None = None) -> int:
    errors = check_modules(modules_dir or ROOT / "modules")
    if errors:
        print("Module sanity check failed:\n")
        for issue in errors:
            print(f"- {issue}")
        return 1

    print("Module sanity check passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
