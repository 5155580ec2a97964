"""
Dependency lock file readers.

Supported formats:

- SwiftPM ``Package.resolved`` version 1 (``object.pins[].package``) and
  versions 2 and 3 (``pins[].identity``)
- CocoaPods ``Podfile.lock`` (the ``PODS`` section)
"""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List

import yaml

logger = logging.getLogger(__name__)

UNKNOWN_VERSION = "unknown"

# "Alamofire (5.4.0)" or "Firebase/Core (8.0.0)"
_POD_ENTRY = re.compile(r"^(?P<name>\S+)\s+\((?P<version>[^)]*)\)\s*$")


@dataclass(frozen=True)
class Dependency:
    """A resolved dependency."""

    name: str
    version: str
    # The lock file it was read from.
    source: str
    manager: str


def _pin_version(pin: Dict[str, Any]) -> str:
    state = pin.get("state") or {}
    version = state.get("version")
    return str(version) if version else UNKNOWN_VERSION


def parse_package_resolved(path: Path) -> List[Dependency]:
    """
    Read a SwiftPM ``Package.resolved`` file.

    Branch or revision pins carry no version and are reported as "unknown".

    Raises:
        ValueError: If the file is not valid JSON or has no pins
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data.get("object"), dict):
        pins = data["object"].get("pins", [])
        name_key = "package"
    elif "pins" in data:
        pins = data.get("pins", [])
        name_key = "identity"
    else:
        raise ValueError(f"{path}: no 'pins' found, unsupported Package.resolved layout")

    dependencies = []
    for pin in pins:
        name = pin.get(name_key) or pin.get("identity") or pin.get("package")
        if not name:
            logger.debug(f"Skipping pin without a name in {path}: {pin}")
            continue
        dependencies.append(
            Dependency(name=str(name), version=_pin_version(pin), source=str(path), manager="swiftpm")
        )
    return dependencies


def _pod_names(entries: Iterable[Any]) -> Iterable[str]:
    for entry in entries:
        if isinstance(entry, str):
            yield entry
        elif isinstance(entry, dict):
            # A pod with its own dependencies: {"Name (1.0)": ["Dep (~> 2)"]}
            yield from entry.keys()


def parse_podfile_lock(path: Path) -> List[Dependency]:
    """
    Read the ``PODS`` section of a CocoaPods ``Podfile.lock``.

    Raises:
        ValueError: If the file is not valid YAML
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"{path}: invalid YAML: {e}") from e

    dependencies = []
    for entry in _pod_names(data.get("PODS", []) or []):
        match = _POD_ENTRY.match(entry)
        if match:
            name, version = match.group("name"), match.group("version").strip() or UNKNOWN_VERSION
        else:
            name, version = entry.strip(), UNKNOWN_VERSION
        dependencies.append(Dependency(name=name, version=version, source=str(path), manager="cocoapods"))
    return dependencies


def parse_lockfile(path: Path) -> List[Dependency]:
    """Dispatch on the file name."""
    if path.name == "Podfile.lock":
        return parse_podfile_lock(path)
    if path.name.endswith(".resolved"):
        return parse_package_resolved(path)
    raise ValueError(f"Unsupported lock file: {path}")
