"""
Fixture datasets shipped with the package.

Each server reads its dataset from a YAML file in this directory. Loads are
cached, but callers always receive their own deep copy.
"""

import copy
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

import yaml

FIXTURES_DIR = Path(__file__).parent


@lru_cache(maxsize=None)
def _read_fixture(name: str) -> Dict[str, Any]:
    path = FIXTURES_DIR / f"{name}.yaml"
    if not path.exists():
        raise FileNotFoundError(f"Fixture not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid fixture {path.name}: {e}") from e


def load_fixture(name: str) -> Dict[str, Any]:
    """
    Load a fixture by name (file stem).

    Args:
        name: Fixture name, e.g. "docs" for docs.yaml

    Returns:
        A fresh copy of the parsed fixture

    Raises:
        FileNotFoundError: If no such fixture exists
        ValueError: If the fixture is not valid YAML
    """
    return copy.deepcopy(_read_fixture(name))
