# schedule.py
from __future__ import annotations

from typing import Any, Dict, Optional

from .model import Automation

REGISTRY_REPO = "https://github.com/Cluka-399/clawflows-registry"
SITE = "https://clawflows.com"


def job_name(name: str) -> str:
    return f"clawflows-{name}"


def enable_instructions(name: str, automation: Automation) -> Optional[str]:
    """
    Instructions for registering a cron job that runs the automation.

    Returns None when the automation has no trigger.schedule.
    """
    schedule = automation.schedule
    if not schedule:
        return None

    text = f"Run clawflows automation: clawflows run {name}"
    lines = [
        f"To enable scheduled execution for {name}:",
        "",
        "Add this to your OpenClaw cron configuration:",
        "",
        "```yaml",
        "cron:",
        "  jobs:",
        f'    - name: "{job_name(name)}"',
        f'      schedule: "{schedule}"',
        "      payload:",
        "        kind: systemEvent",
        f'        text: "{text}"',
        "```",
        "",
        "Or use the OpenClaw cron tool:",
        "",
        "```",
        f'cron add --name "{job_name(name)}" --schedule "{schedule}" --text "{text}"',
        "```",
    ]
    return "\n".join(lines)


def disable_instructions(name: str) -> str:
    lines = [
        f"To disable scheduled execution for {name}:",
        "",
        "Remove the cron job from your OpenClaw configuration,",
        "or use the OpenClaw cron tool:",
        "",
        "```",
        f'cron remove --name "{job_name(name)}"',
        "```",
    ]
    return "\n".join(lines)


# ---------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------

def publish_metadata(automation: Automation) -> Dict[str, Any]:
    """metadata.json template for submitting `automation` to the registry."""
    meta = automation.meta
    metadata: Dict[str, Any] = {
        "name": automation.name,
        "description": automation.description or "Description of your automation",
        "author": meta.get("author") or "your-github-username",
        "version": str(meta.get("version") or "1.0.0"),
        "requires": automation.required_capabilities,
        "trigger": "schedule" if automation.schedule else "manual",
    }
    if automation.schedule:
        metadata["schedule"] = automation.schedule
    metadata["tags"] = list(meta.get("tags") or ["tag1", "tag2"])
    return metadata


def publish_steps(name: str) -> str:
    lines = [
        "To publish your automation to ClawFlows:",
        "",
        "1. Fork the registry:",
        f"   {REGISTRY_REPO}",
        "",
        "2. Create your automation folder:",
        f"   /automations/{name}/",
        "     automation.yaml    (your workflow)",
        "     metadata.json      (see template below)",
        "     README.md          (documentation)",
        "",
        "3. Submit a Pull Request",
        "",
        "4. Once merged, your automation will be available at:",
        f"   {SITE}/automations/{name}/",
    ]
    return "\n".join(lines)
