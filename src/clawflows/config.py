# config.py
from __future__ import annotations

import os
from pathlib import Path
from typing import List

DEFAULT_REGISTRY = "https://clawflows.com"

# provider roots searched after anything in CLAWFLOWS_SKILLS
DEFAULT_SKILLS_DIRS = [
    "/data/skills",
    "/data/clawd/skills",
    "/app/skills",
]


def automations_dir(override: str | None = None) -> Path:
    if override:
        return Path(override)
    env_dir = os.environ.get("CLAWFLOWS_DIR", "").strip()
    if env_dir:
        return Path(env_dir)
    return Path.cwd() / "automations"


def skills_dirs() -> List[Path]:
    dirs: List[Path] = []
    env_dirs = os.environ.get("CLAWFLOWS_SKILLS", "")
    dirs.extend(Path(d) for d in env_dirs.split(os.pathsep) if d.strip())
    dirs.append(Path.cwd() / "skills")
    dirs.extend(Path(d) for d in DEFAULT_SKILLS_DIRS)
    return dirs


def registry_url(override: str | None = None) -> str:
    if override:
        return override
    return os.environ.get("CLAWFLOWS_REGISTRY", "").strip() or DEFAULT_REGISTRY


def logs_dir(automations_override: str | None = None) -> Path:
    return automations_dir(automations_override) / ".logs"
