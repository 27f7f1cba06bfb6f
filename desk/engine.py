from __future__ import annotations

from importlib import import_module
from pathlib import Path
from typing import Any

from fastapi import FastAPI

from desk.errors import ValidationNormalizeMiddleware
from desk.logging import get_logger, setup_logger
from desk.registry import load_modules

log = get_logger(__name__)


def import_attr(path: str) -> Any:
    if ":" not in path:
        raise ValueError(f"Invalid entrypoint '{path}'. Expected module:attr.")
    module_path, attr = path.split(":", 1)
    module = import_module(module_path)
    return getattr(module, attr)


def build_app(modules_path: Path | None = None) -> FastAPI:
    """Assemble the back-office API: one sub-application per enabled module."""
    setup_logger()
    app = FastAPI(title="Exchange Desk")
    app.add_middleware(ValidationNormalizeMiddleware)

    modules = load_modules(modules_path)
    mounted: list[dict[str, str]] = []

    for meta in modules.values():
        entrypoints = meta.get("entrypoints") or {}
        api_entry = entrypoints.get("api")
        if not api_entry:
            continue

        try:
            subapp = import_attr(api_entry)
        except (ImportError, AttributeError, ValueError) as exc:
            log.warning("module_mount_failed", module=meta["name"], error=str(exc))
            continue

        app.mount(meta["mount"], subapp)
        mounted.append({"name": meta["name"], "mount": meta["mount"]})
        log.info("module_mounted", module=meta["name"], mount=meta["mount"])

    @app.get("/")
    def desk_index():
        return {"app": "exchange-desk", "modules": mounted}

    return app
