import os
from ipaddress import IPv4Address
from pathlib import Path
from typing import Literal
from dotenv import load_dotenv
from pydantic import DirectoryPath, Field, IPvAnyAddress, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DOXIE_UPLOAD_", frozen=True)

    PROJECT_NAME: str = "Doxie Upload"

    # Listener settings
    ADDRESS: IPvAnyAddress = IPv4Address("127.0.0.1")
    PORT: int = Field(8080, ge=0, le=65535)

    # Storage settings
    ROOT: DirectoryPath = Path(".")

    # Number of -v flags: 0 warnings only, 3 and up traces every chunk
    VERBOSITY: int = Field(0, ge=0)

    # "container" when running as PID 1
    LIFECYCLE: Literal["host", "container"] = "host"

    @field_validator("ROOT")
    @classmethod
    def root_must_be_writable(cls, value: Path) -> Path:
        if not os.access(value, os.W_OK):
            raise ValueError(f"{value} is not writable")
        return value.resolve()


def load_settings(**overrides) -> Settings:
    """
    Build the process settings from .env, the environment and explicit overrides.

    Overrides win over the environment, which wins over .env.
    """
    load_dotenv(os.path.join(os.getcwd(), ".env"))
    return Settings(**overrides)
