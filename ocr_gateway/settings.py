import os
from importlib.util import find_spec
from pathlib import Path
from sys import platform
from typing import Any

from pydantic import AliasChoices, Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MEBIBYTE = 1024 * 1024


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore", validate_assignment=True)

    OCR_SERVICE_APP_NAME: str = Field("ocr-gateway", min_length=1)
    OCR_SERVICE_VERSION: str = Field(
        "dev",
        min_length=1,
        validation_alias=AliasChoices("OCR_SERVICE_VERSION", "OCR_SERVICE_IMAGE_RELEASE_VERSION"),
    )
    OCR_SERVICE_API_VERSION: str = Field("v1", min_length=1)
    OCR_SERVICE_LOG_LEVEL: int = Field(20, ge=0, le=50)
    OCR_SERVICE_DEBUG_MODE: bool = Field(False)

    OCR_SERVICE_HOST: str = Field("127.0.0.1", min_length=1)
    OCR_SERVICE_PORT: int = Field(8080, ge=1, le=65535)
    OCR_WEB_SERVICE_WORKERS: int = Field(1, ge=1)
    OCR_SERVICE_READ_TIMEOUT: int = Field(30, gt=0)
    OCR_SERVICE_WRITE_TIMEOUT: int = Field(30, gt=0)

    OCR_SERVICE_MAX_PAYLOAD_BYTES: int = Field(10 * MEBIBYTE, gt=0)
    OCR_SERVICE_CORS_ALLOW_ORIGINS: str = Field("*", min_length=1)

    OCR_SERVICE_FETCH_CONNECT_TIMEOUT: float = Field(10.0, gt=0)
    OCR_SERVICE_FETCH_READ_TIMEOUT: float = Field(30.0, gt=0)
    OCR_SERVICE_FETCH_FOLLOW_REDIRECTS: bool = Field(True)
    OCR_SERVICE_TLS_ENABLED: bool = Field(True)

    OCR_TESSDATA_PREFIX: str = Field("/opt/homebrew/share/tessdata", min_length=1)
    OCR_SERVICE_TESSERACT_LANG: str = Field("eng", min_length=1)
    # 3 - fully automatic page segmentation, see tesseract --help-psm
    OCR_SERVICE_TESSERACT_PSM: int = Field(3, ge=0, le=13)
    OCR_CONVERT_GRAYSCALE_IMAGES: bool = Field(False)
    OCR_SERVICE_SERIALIZE_ENGINE: bool = Field(True)

    @field_validator("OCR_SERVICE_CORS_ALLOW_ORIGINS", mode="before")
    @classmethod
    def normalize_origins(cls, value: str) -> str:
        return ",".join(origin.strip() for origin in str(value).split(",") if origin.strip()) or "*"

    def model_post_init(self, __context: Any) -> None:
        tessdata_prefix = self.OCR_TESSDATA_PREFIX

        if platform in ("linux", "linux2"):
            # this is the path from the Docker image, Ubuntu
            tessdata_prefix = "/usr/share/tesseract-ocr/5/tessdata"

            # if not found, then set the path to tesseract 4 data
            if not os.path.exists(tessdata_prefix):
                tessdata_prefix = "/usr/share/tesseract-ocr/4.00/tessdata"
        elif platform == "darwin":
            tessdata_prefix = "/opt/homebrew/share/tessdata"

        if platform in ("linux", "linux2", "darwin") and "OCR_TESSDATA_PREFIX" not in self.model_fields_set:
            self.OCR_TESSDATA_PREFIX = tessdata_prefix

    @computed_field  # type: ignore[prop-decorator]
    @property
    def LOG_LEVEL(self) -> int:
        # 50 - CRITICAL, 40 - ERROR, 30 - WARNING, 20 - INFO, 10 - DEBUG, 0 - NOTSET
        return self.OCR_SERVICE_LOG_LEVEL

    @computed_field  # type: ignore[prop-decorator]
    @property
    def DEBUG_MODE(self) -> bool:
        return self.OCR_SERVICE_DEBUG_MODE

    @computed_field  # type: ignore[prop-decorator]
    @property
    def ROOT_DIR(self) -> str:
        return str(Path(__file__).resolve().parents[1])

    @computed_field  # type: ignore[prop-decorator]
    @property
    def MAX_PAYLOAD_BYTES(self) -> int:
        return self.OCR_SERVICE_MAX_PAYLOAD_BYTES

    @computed_field  # type: ignore[prop-decorator]
    @property
    def CORS_ALLOW_ORIGINS(self) -> list[str]:
        return self.OCR_SERVICE_CORS_ALLOW_ORIGINS.split(",")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def TLS_AVAILABLE(self) -> bool:
        # https needs both the switch and an interpreter built with OpenSSL
        return self.OCR_SERVICE_TLS_ENABLED and find_spec("ssl") is not None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def TESSDATA_PREFIX(self) -> str:
        return self.OCR_TESSDATA_PREFIX

    @computed_field  # type: ignore[prop-decorator]
    @property
    def TESSERACT_LANGUAGE(self) -> str:
        return self.OCR_SERVICE_TESSERACT_LANG


settings = Settings() # type: ignore[call-arg]
