"""
Pydantic-конфиг загрузчика ресурсов и сценария нагрузки.
"""

import os
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field


# ---------- логирование ----------
class FileLogConfig(BaseModel):
    path: str
    max_bytes: int
    backup_count: int
    level: str
    fmt: str = Field(..., alias="format")


class ConsoleLogConfig(BaseModel):
    level: str
    fmt: str = Field(..., alias="format")


class LoggingConfig(BaseModel):
    file: FileLogConfig
    console: ConsoleLogConfig
    date_format: str


# ---------- пути (контракт с транспортом) ----------
class PathsConfig(BaseModel):
    json_dir: str = "/json/"
    html_dir: str = "/html/"
    html_fs_dir: str = "/html/fs/"
    config_url: str = "/api/v1/config"


# ---------- транспорт ----------
class TransportConfig(BaseModel):
    root: Optional[str] = None  # каталог со статикой; None: синтетические данные
    min_service: float = 0.0
    max_service: float = 0.0


# ---------- сценарий нагрузки ----------
class SimulatorConfig(BaseModel):
    random_seed: int
    sim_time: float
    arrival_rate: float
    batch_probability: float = Field(0.0, ge=0.0, le=1.0)
    batch_size: int = Field(2, ge=1)
    names: List[str] = Field(
        default_factory=lambda: ["config", "modules", "ext", "file", "path", "media-tmpl"]
    )
    start_time: float = 0.0
    client_prefix: str = "Client"


# ---------- вывод ----------
class OutputConfig(BaseModel):
    path: str


class Settings(BaseModel):
    logging: LoggingConfig
    paths: PathsConfig = Field(default_factory=PathsConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    simulator: SimulatorConfig
    output: Optional[OutputConfig] = None

    # загрузка из YAML
    @classmethod
    def load(cls, path: str | None = None) -> "Settings":
        yaml_path = path or os.getenv("CONFIG_PATH", "config/default.yaml")
        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data)
