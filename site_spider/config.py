# === FILE: site_spider/config.py ===
"""
Загрузка и валидация конфигурации краулера SiteSpider.
Схема описана через Pydantic, файлы принимаются в YAML или JSON.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from site_spider.utils import safe_db_name


class CrawlerConfig(BaseModel):
    """Конфигурация краулера и хранилища результатов."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    user_agent: str = Field("SiteSpiderBot/1.0", min_length=1, description="Заголовок User-Agent.")
    concurrency: int = Field(5, ge=1, description="Число одновременных запросов по умолчанию.")
    timeout: float = Field(15.0, gt=0, description="Таймаут на один запрос (секунд).")
    databases_dir: Path = Field(Path("databases"), description="Каталог с базами доменов и реестром.")
    registry_file: str = Field("sites_registry.db", min_length=1, description="Имя файла реестра сканирований.")
    query_limit_max: int = Field(1000, ge=1, description="Верхняя граница limit при чтении страниц.")

    @field_validator("registry_file")
    @classmethod
    def _plain_file_name(cls, v: str) -> str:
        if Path(v).name != v:
            raise ValueError("registry_file must be a bare file name")
        return v

    @property
    def registry_path(self) -> Path:
        return self.databases_dir / self.registry_file

    def site_db_path(self, db_name: str) -> Path:
        """Путь к базе конкретного домена."""
        return self.databases_dir / f"{safe_db_name(db_name)}.db"


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> CrawlerConfig:
    """
    Читает YAML или JSON и возвращает проверенный CrawlerConfig.
    Без явного пути берётся configs/default.yaml, а если его нет -
    значения по умолчанию. Явно указанный, но отсутствующий файл - FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return CrawlerConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    try:
        return CrawlerConfig(**data)
    except ValidationError:
        raise


__all__ = ["CrawlerConfig", "load_config"]
