from __future__ import annotations

import json
from pathlib import Path

ERROR_REGISTRY = Path(__file__).with_name("error-registry.json")


def _load_registry() -> dict[str, int]:
    payload = json.loads(ERROR_REGISTRY.read_text(encoding="utf-8"))
    mapping: dict[str, int] = {}
    for row in payload.get("codes", []):
        mapping[str(row["name"])] = int(row["code"])
    return mapping


_REG = _load_registry()

OK = 0
ERR_USAGE = _REG["DOCS_ERR_USAGE"]
ERR_CONFIG = _REG["DOCS_ERR_CONFIG"]
ERR_PROVISION = _REG["DOCS_ERR_PROVISION"]
ERR_SOURCE = _REG["DOCS_ERR_SOURCE"]
ERR_BUILD = _REG["DOCS_ERR_BUILD"]
ERR_ARTIFACT = _REG["DOCS_ERR_ARTIFACT"]
ERR_AUTH = _REG["DOCS_ERR_AUTH"]
ERR_TRANSPORT = _REG["DOCS_ERR_TRANSPORT"]
ERR_INTERNAL = _REG["DOCS_ERR_INTERNAL"]
