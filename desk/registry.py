from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml

from desk.logging import get_logger
from desk.settings import get_settings

log = get_logger(__name__)


def _normalize_manifest(data: Dict[str, Any], *, path: Path) -> Dict[str, Any] | None:
    name = str(data.get("name") or "").strip()
    if not name:
        return None

    slug = data.get("slug") or name.replace("_", "-")
    mount = str(data.get("mount") or f"/{slug}")
    if not mount.startswith("/"):
        mount = "/" + mount
    if mount != "/" and mount.endswith("/"):
        mount = mount.rstrip("/")

    enabled = data.get("enabled")
    if enabled is None:
        enabled = True

    normalized = {**data}
    normalized.update(
        {
            "name": name,
            "slug": slug,
            "mount": mount,
            "enabled": bool(enabled),
            "path": path,
        }
    )
    return normalized


def read_manifest(module_dir: Path) -> Dict[str, Any] | None:
    manifest = module_dir / "module.yaml"
    if not manifest.exists():
        return None
    with open(manifest, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        log.warning("manifest_not_a_mapping", path=str(manifest))
        return None
    return _normalize_manifest(data, path=module_dir)


def load_modules(modules_path: Path | None = None) -> Dict[str, Dict[str, Any]]:
    """Return enabled module manifests keyed by module name."""
    root = modules_path or get_settings().modules_path
    modules: Dict[str, Dict[str, Any]] = {}
    if not root.exists():
        return modules

    for module_dir in sorted(root.iterdir()):
        if not module_dir.is_dir():
            continue
        meta = read_manifest(module_dir)
        if meta is None or not meta["enabled"]:
            continue
        if meta["name"] in modules:
            log.warning("duplicate_module", name=meta["name"], path=str(module_dir))
            continue
        modules[meta["name"]] = meta
    return modules
