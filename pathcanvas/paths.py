"""
Filesystem locations for the path canvas.

Saved graphs (graphs/) and config.json live in the project root, one level
above the pathcanvas package.
"""

from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_graphs_dir() -> Path:
    return PROJECT_ROOT / "graphs"


def get_config_path() -> Path:
    return PROJECT_ROOT / "config.json"


def ensure_graphs_dir() -> Path:
    """Create the graphs directory if needed and return it."""
    graphs_dir = get_graphs_dir()
    graphs_dir.mkdir(parents=True, exist_ok=True)
    return graphs_dir
