"""
Discovery of editing and scanning services.

Editors and scanners live in separate packages and register themselves via
Python entry points:
  - Editors: "prokon.editors" (objects implementing ``ImageEditor``)
  - Scanners: "prokon.scanners" (objects implementing ``ImageScanner``)

Example registration in pyproject.toml:
    [project.entry-points."prokon.editors"]
    gemini = "my_package.editing:GeminiEditor"

The entry point must resolve to a zero-argument callable (usually a class)
returning the service instance.
"""

from __future__ import annotations

import logging
from importlib.metadata import entry_points
from typing import Dict, Optional

from .session import ImageEditor, ImageScanner

logger = logging.getLogger(__name__)

EDITOR_GROUP = "prokon.editors"
SCANNER_GROUP = "prokon.scanners"


class PluginNotFoundError(LookupError):
    """Raised when a requested service is not registered."""


def _discover(group: str, interface: type) -> Dict[str, object]:
    services: Dict[str, object] = {}
    for ep in entry_points(group=group):
        try:
            factory = ep.load()
            instance = factory()
        except Exception as e:
            logger.warning("Failed to load plugin '%s' from %s: %s", ep.name, group, e)
            continue

        if not isinstance(instance, interface):
            logger.warning(
                "Plugin '%s' does not implement %s, skipping",
                ep.name,
                interface.__name__,
            )
            continue

        services[ep.name] = instance
        logger.debug("Discovered %s plugin: %s", group, ep.name)
    return services


def discover_editors() -> Dict[str, ImageEditor]:
    return _discover(EDITOR_GROUP, ImageEditor)  # type: ignore[return-value]


def discover_scanners() -> Dict[str, ImageScanner]:
    return _discover(SCANNER_GROUP, ImageScanner)  # type: ignore[return-value]


def _select(services: Dict[str, object], name: Optional[str], kind: str) -> Optional[object]:
    if name is None:
        if len(services) == 1:
            only = next(iter(services))
            logger.info("Using %s '%s'", kind, only)
            return services[only]
        if services:
            logger.info("Several %ss installed (%s); pass one explicitly", kind, ", ".join(sorted(services)))
        return None
    try:
        return services[name]
    except KeyError:
        available = ", ".join(sorted(services)) or "none installed"
        raise PluginNotFoundError(f"Unknown {kind} '{name}' (available: {available})") from None


def select_editor(name: Optional[str] = None) -> Optional[ImageEditor]:
    """Return the named editor, or the only installed one when ``name`` is omitted."""
    return _select(discover_editors(), name, "editor")  # type: ignore[return-value]


def select_scanner(name: Optional[str] = None) -> Optional[ImageScanner]:
    return _select(discover_scanners(), name, "scanner")  # type: ignore[return-value]
