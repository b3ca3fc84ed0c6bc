"""
app.core.catalog
~~~~~~~~~~~~~~~~

游戏静态目录（人物卡表、身份表）的解析与加载。

两份定义文件均为 YAML:

- ``characters.yaml`` —— ``[{name, skill}, ...]``
- ``roles.yaml``      —— ``{mode: {人数: [身份名, ...]}}``

目录在启动时加载一次，之后只读。
"""
from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.core.logging import get_logger
from app.schemas.room import CharacterCard

logger = get_logger(__name__)


class CatalogError(RuntimeError):
    """定义文件缺失或格式不正确。"""


class CharacterCatalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    characters: tuple[CharacterCard, ...] = Field(..., description="全部人物卡，按文件顺序")

    @field_validator("characters")
    @classmethod
    def _unique_names(cls, value: tuple[CharacterCard, ...]) -> tuple[CharacterCard, ...]:
        names = [card.name for card in value]
        duplicated = sorted({n for n in names if names.count(n) > 1})
        if duplicated:
            raise ValueError(f"人物名称重复: {', '.join(duplicated)}")
        return value

    def __len__(self) -> int:
        return len(self.characters)


class RoleCatalog(BaseModel):
    """mode → 人数 → 有序身份列表。"""

    model_config = ConfigDict(frozen=True)

    tables: Mapping[str, Mapping[int, tuple[str, ...]]] = Field(default_factory=dict)

    @field_validator("tables", mode="before")
    @classmethod
    def _normalize_counts(cls, value: Any) -> Any:
        # 人数键在 YAML 里可能写成数字或字符串，统一转为 int
        if not isinstance(value, Mapping):
            return value
        normalized: dict[str, dict[int, Any]] = {}
        for mode, table in value.items():
            if not isinstance(table, Mapping):
                raise ValueError(f"mode={mode} 的身份表必须是映射")
            normalized[str(mode)] = {int(count): roles for count, roles in table.items()}
        return normalized

    @field_validator("tables", mode="after")
    @classmethod
    def _freeze(cls, value: Mapping[str, Mapping[int, tuple[str, ...]]]) -> Mapping[str, Mapping[int, tuple[str, ...]]]:
        return MappingProxyType({mode: MappingProxyType(dict(table)) for mode, table in value.items()})

    def lookup(self, mode: str, total_players: int) -> tuple[str, ...] | None:
        """查找指定模式与人数的身份列表，不存在时返回 ``None``。"""
        table = self.tables.get(mode)
        if table is None:
            return None
        return table.get(total_players)


def _read_yaml(path: Path) -> Any:
    if not path.exists():
        raise CatalogError(f"定义文件不存在: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise CatalogError(f"YAML 解析失败: {path}: {e}") from e


def load_character_catalog(path: Path) -> CharacterCatalog:
    """从 YAML 文件加载人物卡表。"""
    data = _read_yaml(path)
    try:
        catalog = CharacterCatalog(characters=data or [])
    except ValidationError as e:
        raise CatalogError(f"人物卡表格式错误: {path}: {e}") from e
    logger.info("人物卡表已加载 | %d 张 | %s", len(catalog), path)
    return catalog


def load_role_catalog(path: Path) -> RoleCatalog:
    """从 YAML 文件加载身份表。"""
    data = _read_yaml(path)
    try:
        catalog = RoleCatalog(tables=data or {})
    except (ValidationError, ValueError, TypeError) as e:
        raise CatalogError(f"身份表格式错误: {path}: {e}") from e
    logger.info(
        "身份表已加载 | %s | %s",
        ", ".join(f"{mode}:{sorted(table)}" for mode, table in catalog.tables.items()),
        path,
    )
    return catalog
