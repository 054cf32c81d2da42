"""
应用配置模块

使用 Pydantic Settings 管理所有环境变量和配置。
配置从项目根目录的 .env 文件读取，支持类型验证和默认值。

关键概念：
- BaseSettings: Pydantic 的配置基类，自动从环境变量读取
- computed_field: 计算字段，根据其他字段动态生成
- model_validator: 模型验证器，用于自定义验证逻辑

注意：业务逻辑（EntitlementService）不直接读取这里的配置，
而是由 api/deps.py 在构造服务时注入，方便测试两种模式。
"""
import warnings  # 用于发出警告
from typing import Annotated, Any, Literal  # 类型注解工具

from pydantic import (
    AnyUrl,  # URL 类型验证
    BeforeValidator,  # 字段验证前的转换器
    Field,  # 字段约束
    HttpUrl,  # HTTP URL 类型验证
    PostgresDsn,  # PostgreSQL 连接字符串验证
    computed_field,  # 计算字段装饰器
    model_validator,  # 模型验证器装饰器
)
from pydantic_settings import BaseSettings, SettingsConfigDict  # 配置管理
from typing_extensions import Self  # 用于类型注解中引用自身类型


def parse_cors(v: Any) -> list[str] | str:
    """
    解析 CORS 配置值

    支持两种格式：
    1. 逗号分隔的字符串："http://localhost:3000,http://localhost:3001"
    2. 列表格式：["http://localhost:3000", "http://localhost:3001"]

    Raises:
        ValueError: 当输入格式不正确时
    """
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    """
    应用配置类

    配置来源优先级：
    1. 环境变量（最高优先级）
    2. .env 文件
    3. 代码中的默认值（最低优先级）
    """
    model_config = SettingsConfigDict(
        # 使用项目根目录的 .env 文件（backend/ 目录的上一级）
        env_file="../.env",
        env_ignore_empty=True,  # 忽略空的环境变量
        extra="ignore",  # 忽略未定义的额外字段
    )
    API_V1_STR: str = "/v1"  # API 版本前缀（移动端固定请求 /v1/*）
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        """计算字段：获取所有 CORS 允许的源（去除尾部斜杠）"""
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]

    PROJECT_NAME: str = "Watermark Remover API"
    VERSION: str = "1.0.0"
    SENTRY_DSN: HttpUrl | None = None

    # 数据库
    # DATABASE_URL 优先（如 sqlite:///./watermark.db），否则使用 Postgres 配置
    DATABASE_URL: str | None = None
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return str(
            PostgresDsn.build(
                scheme="postgresql+psycopg",
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD,
                host=self.POSTGRES_SERVER,
                port=self.POSTGRES_PORT,
                path=self.POSTGRES_DB,
            )
        )

    # 免费额度与付费墙
    FREE_USAGE_LIMIT: int = Field(default=1, ge=0)  # 每个安装的免费次数
    # 开发模式：跳过付费墙且不记录用量。必须显式开启，不会根据 ENVIRONMENT 推断
    DEV_MODE: bool = False
    PRO_FREE_REMAINING: int = 999  # Pro 用户返回的"无限"剩余次数

    # 商品目录（JSON 文件），为空时使用包内默认目录
    PRODUCT_CATALOG_PATH: str | None = None

    # Apple IAP 收据验证
    APPLE_SHARED_SECRET: str = ""
    APPLE_VERIFY_URL: str = "https://buy.itunes.apple.com/verifyReceipt"
    APPLE_SANDBOX_VERIFY_URL: str = "https://sandbox.itunes.apple.com/verifyReceipt"
    APPLE_VERIFY_TIMEOUT_SECONDS: float = 30.0
    RECEIPT_EXCERPT_LENGTH: int = 500  # 审计用收据摘录长度

    # 火山引擎 Ark 图像编辑（外部服务）
    IMAGE_EDIT_MOCK: bool = True  # 本地开发时直接返回原图
    ARK_API_KEY: str | None = None
    ARK_ENDPOINT: str = "https://ark.cn-beijing.volces.com/api/v3"
    ARK_MODEL: str = "doubao-seedream-4-5-251128"
    IMAGE_EDIT_TIMEOUT_SECONDS: float = 120.0
    MAX_IMAGE_SIZE_MB: int = 10

    def _check_default_secret(self, var_name: str, value: str | None) -> None:
        """
        检查敏感配置是否使用了默认值

        本地环境只警告，其他环境直接报错。
        """
        if value == "changethis":
            message = (
                f'The value of {var_name} is "changethis", '
                "for security, please change it, at least for deployments."
            )
            if self.ENVIRONMENT == "local":
                warnings.warn(message, stacklevel=1)
            else:
                raise ValueError(message)

    @model_validator(mode="after")
    def _enforce_non_default_secrets(self) -> Self:
        self._check_default_secret("POSTGRES_PASSWORD", self.POSTGRES_PASSWORD)
        self._check_default_secret("APPLE_SHARED_SECRET", self.APPLE_SHARED_SECRET)
        return self

    @model_validator(mode="after")
    def _forbid_dev_mode_in_production(self) -> Self:
        """生产环境禁止开启 DEV_MODE，避免付费墙被意外绕过"""
        if self.DEV_MODE and self.ENVIRONMENT == "production":
            raise ValueError("DEV_MODE must be disabled when ENVIRONMENT is production")
        return self


# 创建全局配置实例，整个应用共享
settings = Settings()  # type: ignore
