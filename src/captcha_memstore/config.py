from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field


class StoreConfig(BaseModel):
    # Added to "now" on every set.
    expiration_seconds: float = Field(default=600.0, gt=0)
    # Period between background eviction passes.
    sweep_interval_seconds: float = Field(default=60.0, gt=0)


class EnvSettings(BaseModel):
    memstore_expiration_seconds: float | None = None
    memstore_sweep_interval_seconds: float | None = None
    memstore_config_path: str = "./configs/memstore.yaml"

    @classmethod
    def load(cls) -> "EnvSettings":
        load_dotenv()
        return cls(
            memstore_expiration_seconds=os.getenv("MEMSTORE_EXPIRATION_SECONDS") or None,
            memstore_sweep_interval_seconds=os.getenv("MEMSTORE_SWEEP_INTERVAL_SECONDS") or None,
            memstore_config_path=os.getenv("MEMSTORE_CONFIG_PATH", "./configs/memstore.yaml"),
        )


def load_yaml_config(path: Path) -> StoreConfig:
    if not path.exists():
        return StoreConfig()
    data = yaml.safe_load(path.read_text()) or {}
    return StoreConfig.model_validate(data)


def save_yaml_config(path: Path, cfg: StoreConfig) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(cfg.model_dump(mode="json"), sort_keys=False))


def load_config(env: EnvSettings | None = None) -> StoreConfig:
    """Resolve the YAML file named by the environment, then apply env overrides."""
    env = env or EnvSettings.load()
    cfg = load_yaml_config(Path(env.memstore_config_path))
    overrides = {}
    if env.memstore_expiration_seconds is not None:
        overrides["expiration_seconds"] = env.memstore_expiration_seconds
    if env.memstore_sweep_interval_seconds is not None:
        overrides["sweep_interval_seconds"] = env.memstore_sweep_interval_seconds
    if not overrides:
        return cfg
    return StoreConfig.model_validate({**cfg.model_dump(), **overrides})
