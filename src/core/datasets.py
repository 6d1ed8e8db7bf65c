"""Loader for the bundled YAML datasets under ``src/data``."""

from pathlib import Path
from typing import Any

import yaml

BUNDLED_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def data_path(name: str, data_dir: str | Path | None = None) -> Path:
    """Resolve *name* against *data_dir* (empty or ``None`` = bundled data)."""
    base = Path(data_dir) if data_dir else BUNDLED_DATA_DIR
    return base / name


def load_dataset(name: str, key: str, data_dir: str | Path | None = None) -> Any:
    """Return the top-level *key* of the YAML document *name*.

    Raises:
        FileNotFoundError: If the YAML file does not exist.
        ValueError: If the YAML is invalid or lacks *key*.
    """
    path = data_path(name, data_dir)
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found: {path}")

    raw = path.read_text(encoding="utf-8")
    try:
        data: Any = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(data, dict) or key not in data:
        raise ValueError(f"YAML must contain a top-level '{key}' key in {path}")
    return data[key]
