from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import yaml

from ai_client import DEFAULT_MODEL
from generator import DOC_STYLES

CONFIG_DIR = "_docsync"
CONFIG_FILE = "config.yaml"
MODEL_ENV = "DOCSYNC_MODEL"


@dataclass
class DocsyncConfig:
    output_dir: str = CONFIG_DIR
    style: str = "technical"
    model: str = DEFAULT_MODEL


def config_path(repo: Path) -> Path:
    return repo / CONFIG_DIR / CONFIG_FILE


def load_config(repo: Path, warnings: List[str]) -> DocsyncConfig:
    """Read ``_docsync/config.yaml``; missing or unusable files fall back to defaults."""
    config = DocsyncConfig()
    path = config_path(repo)
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        payload = None
    except yaml.YAMLError as exc:
        warnings.append(f"Ignoring {path}: {exc}")
        payload = None
    if payload is not None and not isinstance(payload, dict):
        warnings.append(f"Ignoring {path}: expected a mapping")
        payload = None
    payload = payload or {}

    output_dir = payload.get("outputDir")
    if isinstance(output_dir, str) and output_dir.strip():
        config.output_dir = output_dir.strip()
    style = payload.get("style")
    if style is not None:
        if style in DOC_STYLES:
            config.style = style
        else:
            warnings.append(f"Unknown style {style!r} in {path}; using {config.style}")
    model = payload.get("model")
    if isinstance(model, str) and model.strip():
        config.model = model.strip()
    env_model = os.environ.get(MODEL_ENV)
    if env_model:
        config.model = env_model
    return config


def resolve_output_dir(repo: Path, config: DocsyncConfig, out_arg: Optional[str] = None) -> Path:
    out_path = Path(out_arg or config.output_dir)
    if out_path.is_absolute():
        return out_path
    return (repo / out_path).resolve()
