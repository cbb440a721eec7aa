from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_MIME = "image/jpeg,image/png,image/webp,image/gif,image/avif"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    bucket_name: str | None = Field(default=None, alias="BUCKET_NAME")
    region: str = Field(
        default="us-east-1",
        validation_alias=AliasChoices("AWS_REGION", "AWS_DEFAULT_REGION", "region"),
    )

    url_expires_seconds: int = Field(default=600, gt=0, alias="URL_EXPIRES_SECONDS")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0, alias="MAX_UPLOAD_BYTES")
    allowed_mime: str = Field(default=DEFAULT_ALLOWED_MIME, alias="ALLOWED_MIME")

    cors_origin: str = Field(default="*", alias="CORS_ORIGIN")
    cors_allow_headers: str = Field(default="Content-Type,x-api-key", alias="CORS_ALLOW_HEADERS")
    cors_allow_methods: str = Field(default="OPTIONS,POST,GET", alias="CORS_ALLOW_METHODS")

    storage_backend: Literal["s3", "local"] = Field(default="s3", alias="STORAGE_BACKEND")
    s3_endpoint: HttpUrl | None = Field(default=None, alias="S3_ENDPOINT_URL")
    s3_access_key: str | None = Field(default=None, alias="S3_ACCESS_KEY")
    s3_secret_key: str | None = Field(default=None, alias="S3_SECRET_KEY")
    local_storage_dir: str = Field(default="./storage", alias="LOCAL_STORAGE_DIR")
    local_signing_key: str | None = Field(default=None, alias="LOCAL_SIGNING_KEY")

    key_unique_suffix: bool = Field(default=False, alias="KEY_UNIQUE_SUFFIX")
    list_presign: bool = Field(default=True, alias="LIST_PRESIGN")
    list_page_size: int = Field(default=1000, gt=0, le=1000, alias="LIST_PAGE_SIZE")

    api_key: str | None = Field(default=None, alias="API_KEY")

    @property
    def allowed_types(self) -> tuple[str, ...]:
        return tuple(item.strip() for item in self.allowed_mime.split(",") if item.strip())

    @property
    def cors_headers(self) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.cors_origin,
            "Access-Control-Allow-Headers": self.cors_allow_headers,
            "Access-Control-Allow-Methods": self.cors_allow_methods,
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()
