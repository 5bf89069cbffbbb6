"""
配置
config/default.yaml 提供默认值，config/local.yaml (不提交) 按键覆盖
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class SystemConfig(BaseModel):
    name: str = "Midnight"
    version: str = "0.1.0"


class DisciplineConfig(BaseModel):
    daily_standard: int = Field(default=7, ge=1)    # 完成多少个任务算 100%
    history_limit: int = Field(default=30, ge=1)    # 存档内保留的判定条数


class QuestsConfig(BaseModel):
    default_xp: int = Field(default=10, ge=1)


class StorageConfig(BaseModel):
    database: str = "data/midnight.db"
    storage_key: str = "lifeRpg:v1"


class Config(BaseModel):
    system: SystemConfig = Field(default_factory=SystemConfig)
    discipline: DisciplineConfig = Field(default_factory=DisciplineConfig)
    quests: QuestsConfig = Field(default_factory=QuestsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)


def load_config(config_dir: str | Path = "config") -> Config:
    """读取 default.yaml 再叠加 local.yaml; 文件缺失时使用内置默认值

    取值越界 (例如 daily_standard: 0) 会抛出 pydantic.ValidationError。
    """
    config_dir = Path(config_dir)
    merged = _deep_merge(
        _read_yaml(config_dir / "default.yaml"),
        _read_yaml(config_dir / "local.yaml"),
    )
    return Config.model_validate(merged)


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    """override 中的嵌套字典逐层合并，其余值直接覆盖"""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged
