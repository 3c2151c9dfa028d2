"""配置模块：负责加载和缓存基于环境变量的应用设置。"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Iterator, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# 探测项目根目录并加载环境文件，支持通过 ENV_FILE/ENVIRONMENT 定制优先级。
def _detect_base_dir() -> Path:
    """向上遍历目录树，寻找包含 `app` 目录的项目根路径。"""
    current = Path(__file__).resolve()
    for candidate in current.parents:
        if (candidate / "app").is_dir():
            return candidate
    return current.parent


BASE_DIR = _detect_base_dir()
CACHE_BACKENDS = ("redis", "memory", "none")


def _candidate_env_files() -> Iterator[Tuple[Path, bool]]:
    """按优先级产出待加载的环境文件及是否覆盖已有变量。

    显式设置 `ENV_FILE` 时只加载该文件；否则先加载 `.env`，
    再叠加 `ENVIRONMENT` 对应的 `.env.<name>`（`DEBUG` 开启时默认 development）。
    """
    override = os.getenv("ENV_FILE")
    if override:
        yield BASE_DIR / override, True
        return

    yield BASE_DIR / ".env", False
    environment = os.getenv("ENVIRONMENT")
    if environment is None and (os.getenv("DEBUG") or "").strip().lower() in {"1", "true", "yes", "on"}:
        environment = "development"
    if environment:
        name = environment if environment.startswith(".env") else f".env.{environment}"
        yield BASE_DIR / name, True


for _env_path, _override in _candidate_env_files():
    if _env_path.exists():
        load_dotenv(_env_path, override=_override, encoding="utf-8")


class Settings(BaseSettings):
    """
    封装组织层级服务运行所需的所有配置项，每个字段都可以通过环境变量重写。
    """

    project_name: str = Field(default="Org Hierarchy API", alias="PROJECT_NAME")
    api_v1_str: str = Field(default="/api/v1", alias="API_V1_STR")
    debug: bool = Field(default=False, alias="DEBUG")

    # 显式给出 DATABASE_URL 时优先使用（测试、SQLite 本地调试）
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    database_host: str = Field(default="localhost", alias="DATABASE_HOST")
    database_port: int = Field(default=5432, alias="DATABASE_PORT")
    database_user: str = Field(default="postgres", alias="DATABASE_USER")
    database_password: str = Field(default="postgres", alias="DATABASE_PASSWORD")
    database_name: str = Field(default="org_hierarchy", alias="DATABASE_NAME")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_db: int = Field(default=0, alias="REDIS_DB")

    # 缓存后端：redis（不可用时回退内存）/ memory / none
    cache_backend: str = Field(default="redis", alias="CACHE_BACKEND")
    cache_ttl_seconds: int = Field(default=600, alias="CACHE_TTL_SECONDS")

    # 移动/删除在乐观锁冲突时的最大尝试次数
    hierarchy_max_retries: int = Field(default=3, alias="HIERARCHY_MAX_RETRIES")
    seed_default_departments: bool = Field(default=True, alias="SEED_DEFAULT_DEPARTMENTS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="log", alias="LOG_DIR")
    log_file_name: str = Field(default="app.log", alias="LOG_FILE_NAME")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    app_port: int = Field(default=8000, alias="APP_PORT")
    timezone: str = Field(default="Asia/Shanghai", alias="TIMEZONE")

    model_config = SettingsConfigDict(extra="ignore")

    @field_validator("cache_backend")
    @classmethod
    def _check_cache_backend(cls, value: str) -> str:
        mode = (value or "").strip().lower()
        if mode not in CACHE_BACKENDS:
            raise ValueError(f"CACHE_BACKEND 仅支持 {'/'.join(CACHE_BACKENDS)}")
        return mode

    @property
    def sql_database_url(self) -> str:
        """返回数据库连接串：优先 DATABASE_URL，否则拼接 PostgreSQL 连接串。"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def redis_url(self) -> str:
        """根据当前配置生成 Redis 连接地址。"""
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    def _resolve_path(self, raw: str) -> Path:
        path = Path(raw)
        if not path.is_absolute():
            path = BASE_DIR / path
        return path

    @property
    def log_directory(self) -> Path:
        """返回日志目录的绝对路径，支持相对路径配置。"""
        return self._resolve_path(self.log_dir)

    @property
    def log_file_path(self) -> Path:
        return self.log_directory / self.log_file_name

    @property
    def timezone_info(self) -> ZoneInfo:
        """返回当前配置对应的时区信息，无法解析时回退到 UTC。"""
        try:
            return ZoneInfo(self.timezone)
        except ZoneInfoNotFoundError:
            return ZoneInfo("UTC")


@lru_cache
def get_settings() -> Settings:
    """返回单例化的配置对象，避免重复解析环境变量。"""
    return Settings()
