# === FILE: civic_scout/config.py ===
"""
Загрузка и валидация конфигурации краулера CivicScout.

Схема описана через Pydantic: неизменяемый объект конфигурации создаётся один
раз на запуск и передаётся в сессию обхода целиком.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, List, Union
from urllib.parse import urlparse

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
    model_validator,
)

DEFAULT_USER_AGENTS: tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/121.0",
)


class CrawlerConfig(BaseModel):
    """Конфигурация одного запуска обхода."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    seed_urls: List[HttpUrl] = Field(..., min_length=1, description="Стартовые URL.")
    allowed_domains: List[str] = Field(
        default_factory=list,
        description="Белый список доменов; пусто → домены стартовых URL.",
    )
    government_suffix: str = Field(".gov.uk", min_length=1, description="Суффикс госдоменов.")

    max_urls: int = Field(100, ge=1, description="Жесткий лимит по числу URL за сессию.")
    max_depth: int = Field(3, ge=0, description="Максимальная глубина обхода ссылок.")
    discovery_cap: int = Field(3, ge=0, description="Новых ссылок с одной страницы.")

    base_delay: float = Field(1.5, ge=0, description="Минимальная пауза между запросами.")
    max_delay: float = Field(4.0, ge=0, description="Максимальная пауза между запросами.")
    save_interval: int = Field(10, ge=1, description="Снимок каждые N результатов.")

    timeout: float = Field(15.0, gt=0, description="Таймаут на один запрос (секунд).")
    max_retries: int = Field(2, ge=0, description="Число повторных попыток.")
    retry_delay: float = Field(1.0, ge=0, description="Шаг линейной задержки между попытками.")
    user_agents: List[str] = Field(
        default_factory=lambda: list(DEFAULT_USER_AGENTS),
        min_length=1,
        description="Ротируемые заголовки User-Agent.",
    )
    accept_language: str = Field("en-GB,en-US;q=0.9,en;q=0.8", min_length=1)

    min_content_length: int = Field(100, ge=0, description="Более короткие страницы отбрасываются.")
    excerpt_limit: int = Field(20000, ge=1, description="Длина сохраняемого фрагмента текста.")
    concurrency: int = Field(1, ge=1, description="Число параллельных воркеров.")
    respect_robots: bool = Field(True, description="Учитывать robots.txt.")

    output_dir: Path = Field(Path("civic-data"), description="Каталог снимков и отчётов.")
    top_n: int = Field(10, ge=1, description="Размер списка лучших страниц в отчёте.")

    @field_validator("allowed_domains", mode="before")
    def _normalize_domains(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [str(d).strip().lower().lstrip(".") for d in v if str(d).strip()]
        return v

    @field_validator("user_agents")
    def _reject_blank_agents(cls, v: List[str]) -> List[str]:
        if any(not ua.strip() for ua in v):
            raise ValueError("user_agents must not contain blank entries")
        return v

    @model_validator(mode="before")
    def _domains_from_seeds(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("allowed_domains"):
            hosts: list[str] = []
            for url in data.get("seed_urls") or []:
                host = (urlparse(str(url)).hostname or "").lower()
                if host and host not in hosts:
                    hosts.append(host)
            data = {**data, "allowed_domains": hosts}
        return data

    @model_validator(mode="after")
    def _check_delay_window(self) -> CrawlerConfig:
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        return self

    @property
    def seeds(self) -> list[str]:
        """Стартовые URL в виде строк."""
        return [str(u) for u in self.seed_urls]


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top-level YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top-level JSON must be a mapping, got {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> CrawlerConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект CrawlerConfig.
    При отсутствии файла бросает FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
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
        raise ValueError(f"Unsupported config format: {suffix}")

    return CrawlerConfig(**data)


__all__ = ["CrawlerConfig", "DEFAULT_USER_AGENTS", "ValidationError", "load_config"]
