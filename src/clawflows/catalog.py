# catalog.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from .capabilities import CapabilityIndex, check_requirements
from .model import AutomationError
from .registry import RegistryClient, RegistryError
from .runner import YAML_SUFFIXES, FlowError, load_automation


@dataclass(frozen=True)
class InstalledAutomation:
    """One automation file found in the automations directory."""
    name: str
    path: Path
    description: str | None = None
    schedule: str | None = None
    requires: List[str] = field(default_factory=list)
    error: str | None = None   # set when the file could not be read/parsed


def _stem(path: Path) -> str:
    name = path.name
    for suffix in YAML_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def list_installed(automations_dir: str | Path) -> List[InstalledAutomation]:
    """
    List automation files in `automations_dir`.

    A file that fails to load is still listed, with `error` set.
    """
    root = Path(automations_dir)
    if not root.is_dir():
        return []

    out: List[InstalledAutomation] = []
    for path in sorted(p for p in root.iterdir() if p.is_file() and p.name.endswith(YAML_SUFFIXES)):
        name = _stem(path)
        try:
            automation = load_automation(path)
        except (AutomationError, OSError, UnicodeDecodeError) as e:
            out.append(InstalledAutomation(name=name, path=path, error=str(e)))
            continue
        out.append(InstalledAutomation(
            name=name,
            path=path,
            description=automation.description,
            schedule=automation.schedule,
            requires=automation.required_capabilities,
        ))
    return out


@dataclass(frozen=True)
class InstallResult:
    name: str
    path: Path
    installed: bool              # False when it already existed and force was off
    schedule: str | None = None
    missing: List[str] = field(default_factory=list)


def _metadata_requires(raw: Iterable) -> List[str]:
    names = []
    for r in raw or []:
        if isinstance(r, dict):
            if r.get("capability"):
                names.append(str(r["capability"]))
        else:
            names.append(str(r))
    return names


def install_automation(
    client: RegistryClient,
    name: str,
    automations_dir: str | Path,
    index: CapabilityIndex,
    *,
    force: bool = False,
    skip_check: bool = False,
) -> InstallResult:
    """
    Download an automation from the registry into `automations_dir`.

    Raises:
        RegistryError: If the automation has no metadata or the download fails
        FlowError: kind="missing_requirement" when required capabilities are
            not installed (unless skip_check)
    """
    target = Path(automations_dir) / f"{name}.yaml"
    if target.exists() and not force:
        return InstallResult(name=name, path=target, installed=False)

    metadata: Optional[dict] = client.fetch_metadata(name)
    if metadata is None:
        raise RegistryError(f'Automation "{name}" not found in registry.', status=404)

    required = _metadata_requires(metadata.get("requires"))
    check = check_requirements(required, index)
    missing = [r for r in required if r in check.missing]

    if missing and not skip_check:
        raise FlowError(
            kind="missing_requirement",
            automation=name,
            step=None,
            message=f"Missing capabilities: {', '.join(missing)}",
            details={"missing": missing},
        )

    content = client.fetch_automation(name)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")

    return InstallResult(
        name=name,
        path=target,
        installed=True,
        schedule=metadata.get("schedule"),
        missing=missing,
    )
