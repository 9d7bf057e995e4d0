from pathlib import Path

import pytest

from clawflows.capabilities import Provider

SEARCH_MANIFEST = """# Web search

Provides: web-search, page-fetch

### query
Search the web for a phrase.

**How to fulfill:**
Use the browser tool to search for `q` and return the top links.

**Returns:** list of links

### fetch
Download a page and return its text.
"""


def make_provider(root: Path, name: str, manifest: str | None = None, skill: str | None = None) -> Path:
    """Create a provider directory under `root` with optional CAPABILITY.md / SKILL.md."""
    path = root / name
    path.mkdir(parents=True, exist_ok=True)
    if manifest is not None:
        (path / "CAPABILITY.md").write_text(manifest, encoding="utf-8")
    if skill is not None:
        (path / "SKILL.md").write_text(skill, encoding="utf-8")
    return path


@pytest.fixture
def skills_root(tmp_path):
    root = tmp_path / "skills"
    make_provider(root, "searcher", manifest=SEARCH_MANIFEST)
    make_provider(
        root,
        "charts",
        skill="---\nname: charts\nprovides:\n  - capability: chart-generation\n---\n# Charts\n",
    )
    return root


@pytest.fixture
def index(tmp_path):
    """Capability index pointing at a provider without a manifest."""
    root = tmp_path / "bare-skills"
    make_provider(root, "searcher")
    return {"web-search": Provider(provider_id="searcher", location=root)}
