from __future__ import annotations

import copy
import json
from importlib import resources
from typing import Any


def load_jikan_sample(name: str) -> dict[str, Any]:
    """Return a fresh copy of a stored Jikan response payload."""
    resource = resources.files(__name__).joinpath(f"{name}.json")
    if not resource.is_file():
        raise FileNotFoundError(f"No Jikan sample named {name}")
    text = resource.read_text(encoding="utf-8")
    return copy.deepcopy(json.loads(text))
