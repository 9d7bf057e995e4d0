# capabilities.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

import yaml

# ---------------------------------------------------------------------
# Provider discovery
# ---------------------------------------------------------------------
# A provider is a directory directly below one of the provider roots
# (skills dirs). It declares capabilities in either or both of:
#
#   CAPABILITY.md   a line "Provides: web-search, page-fetch"
#   SKILL.md        front matter:
#                     ---
#                     provides:
#                       - capability: web-search
#                     ---
#
# The first provider to declare a name owns it for the whole scan.
# ---------------------------------------------------------------------

MANIFEST_FILE = "CAPABILITY.md"
DESCRIPTOR_FILE = "SKILL.md"

_PROVIDES_LINE = re.compile(r"^Provides:\s*(.+)$", re.MULTILINE)
_FRONT_MATTER = re.compile(r"^---\r?\n(.*?)\r?\n---", re.DOTALL)
_PROVIDES_BLOCK = re.compile(r"provides:\s*\n((?:\s+-[^\n]+\n?)*)")
_CAPABILITY_ENTRY = re.compile(r"capability:\s*(\S+)")


@dataclass(frozen=True)
class Provider:
    """Where a capability comes from: provider dir name + the root it was found in."""
    provider_id: str
    location: Path

    @property
    def path(self) -> Path:
        return self.location / self.provider_id

    @property
    def manifest_path(self) -> Path:
        return self.path / MANIFEST_FILE


CapabilityIndex = Dict[str, Provider]


@dataclass(frozen=True)
class RequirementCheck:
    satisfied: Set[str] = field(default_factory=set)
    missing: Set[str] = field(default_factory=set)

    @property
    def ok(self) -> bool:
        return not self.missing


def parse_provides(content: str) -> List[str]:
    """Names from the first `Provides:` line of a capability manifest."""
    match = _PROVIDES_LINE.search(content)
    if not match:
        return []
    return [s.strip() for s in match.group(1).split(",") if s.strip()]


def _collect_provides(node: Any) -> List[str]:
    """Capability names from every `provides:` list, at any depth."""
    names: List[str] = []
    if isinstance(node, dict):
        for key, value in node.items():
            if key == "provides" and isinstance(value, list):
                for entry in value:
                    if isinstance(entry, dict) and entry.get("capability"):
                        names.append(str(entry["capability"]))
            else:
                names.extend(_collect_provides(value))
    elif isinstance(node, list):
        for item in node:
            names.extend(_collect_provides(item))
    return names


def parse_front_matter_provides(content: str) -> List[str]:
    """Names from `provides: [- capability: x]` in a descriptor's front matter."""
    match = _FRONT_MATTER.match(content)
    if not match:
        return []
    front_matter = match.group(1)

    try:
        data = yaml.safe_load(front_matter)
    except yaml.YAMLError:
        data = None

    if isinstance(data, dict):
        return _collect_provides(data)

    # not valid YAML: fall back to a line scan of the provides block
    block = _PROVIDES_BLOCK.search(front_matter)
    if not block:
        return []
    return [m.group(1) for m in _CAPABILITY_ENTRY.finditer(block.group(1))]


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def _provider_dirs(root: Path) -> List[Path]:
    try:
        return sorted(p for p in root.iterdir() if p.is_dir())
    except OSError:
        # missing or unreadable root
        return []


def scan_capabilities(provider_roots: Iterable[str | Path]) -> CapabilityIndex:
    """
    Build a capability index from provider root directories.

    Never raises for filesystem problems: unreadable roots, providers or files
    just contribute nothing.

    Args:
        provider_roots: Directories whose immediate subdirectories are providers,
            scanned in the given order

    Returns:
        Mapping of capability name -> Provider (first declaration wins)
    """
    index: CapabilityIndex = {}

    for root in provider_roots:
        root_p = Path(root)
        for provider_dir in _provider_dirs(root_p):
            provider = Provider(provider_id=provider_dir.name, location=root_p)
            declared: List[str] = []

            manifest = _read_text(provider_dir / MANIFEST_FILE)
            if manifest is not None:
                declared.extend(parse_provides(manifest))

            descriptor = _read_text(provider_dir / DESCRIPTOR_FILE)
            if descriptor is not None:
                declared.extend(parse_front_matter_provides(descriptor))

            for name in declared:
                if name not in index:
                    index[name] = provider

    return index


def check_requirements(requirements: Iterable[str], index: CapabilityIndex) -> RequirementCheck:
    satisfied: Set[str] = set()
    missing: Set[str] = set()
    for name in requirements:
        (satisfied if name in index else missing).add(name)
    return RequirementCheck(satisfied=satisfied, missing=missing)


# ---------------------------------------------------------------------
# Operator instructions
# ---------------------------------------------------------------------

def method_instructions(manifest: str, method: str | None) -> str:
    """
    Pull the instructions for `method` out of a CAPABILITY.md.

    Looks for a `### <method>` section; inside it, prefers the text after
    `**How to fulfill:**`.
    """
    if not method:
        return f"Method {method} not found in {MANIFEST_FILE}"

    section = re.search(rf"###\s*{re.escape(method)}[\s\S]*?(?=###|$)", manifest, re.IGNORECASE)
    if not section:
        return f"Method {method} not found in {MANIFEST_FILE}"

    how_to = re.search(r"\*\*How to fulfill:\*\*\s*([\s\S]*?)(?=\*\*|$)", section.group(0), re.IGNORECASE)
    if how_to:
        return how_to.group(1).strip()

    return section.group(0).strip()


def load_method_instructions(provider: Provider, method: str | None) -> Optional[str]:
    """Instructions from the provider's manifest, or None when it has no manifest."""
    manifest = _read_text(provider.manifest_path)
    if manifest is None:
        return None
    return method_instructions(manifest, method)
