from __future__ import annotations

import os
from pathlib import Path
from typing import Dict

import yaml

DEFAULT_CONFIG: Dict[str, object] = {
    "data_file": "finance_data.json",
    "log_level": "INFO",
    "categories": {
        "income": [
            "Salary",
            "Side job",
            "Investments",
            "Gifts",
            "Other",
        ],
        "expense": [
            "Food",
            "Transport",
            "Entertainment",
            "Utilities",
            "Health",
            "Education",
            "Clothing",
            "Other",
        ],
    },
}

CONFIG_PATH = Path("pocketledger.yaml")

ENV_OVERRIDES = {
    "POCKET_LEDGER_DATA_FILE": "data_file",
    "POCKET_LEDGER_LOG_LEVEL": "log_level",
}


def _with_defaults(data: Dict[str, object]) -> Dict[str, object]:
    """Fill in missing settings and per-kind category lists from DEFAULT_CONFIG."""
    config = dict(data)
    for key in ("data_file", "log_level"):
        config.setdefault(key, DEFAULT_CONFIG[key])

    categories = data.get("categories") or {}
    if not isinstance(categories, dict):
        raise ValueError("'categories' must map income/expense to lists of labels")
    config["categories"] = {
        kind: list(categories.get(kind) or labels)
        for kind, labels in DEFAULT_CONFIG["categories"].items()  # type: ignore[union-attr]
    }
    return config


def load_config(path: Path | str | None = None) -> Dict[str, object]:
    """Read the YAML config at ``path`` and fill in anything it leaves out.

    A missing file yields the defaults. Environment variables listed in
    ``ENV_OVERRIDES`` win over both.
    """
    target = Path(path) if path else CONFIG_PATH
    data: Dict[str, object] = {}
    if target.exists():
        with target.open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {target} must contain a mapping")

    config = _with_defaults(data)
    for env_name, key in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            config[key] = value
    return config


def save_config(config: Dict[str, object], path: Path | str | None = None) -> None:
    target = Path(path) if path else CONFIG_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as fp:
        yaml.safe_dump(config, fp, sort_keys=False, allow_unicode=True)


def default_categories(config: Dict[str, object], kind: str) -> list[str]:
    categories = config.get("categories") or {}
    return list(categories.get(kind) or [])  # type: ignore[union-attr]
