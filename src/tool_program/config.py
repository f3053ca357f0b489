# config.py
# Runtime settings, read from the environment (and a local .env file).

import os

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Engine and demo-tool configuration."""

    prefix: str = Field(default="code_exec_", description="Prefix of the two host-facing tool names.")
    log_level: str = Field(default="WARNING")
    workspace: str = Field(default="./workspace", description="Root directory file_write is confined to.")
    http_timeout: float = Field(default=10.0, gt=0)
    summary_limit: int = Field(default=4000, gt=0)

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv(find_dotenv(usecwd=True))
        values = {
            "prefix": os.getenv("TOOL_PROGRAM_PREFIX"),
            "log_level": os.getenv("TOOL_PROGRAM_LOG_LEVEL"),
            "workspace": os.getenv("TOOL_PROGRAM_WORKSPACE"),
            "http_timeout": os.getenv("TOOL_PROGRAM_HTTP_TIMEOUT"),
            "summary_limit": os.getenv("TOOL_PROGRAM_SUMMARY_LIMIT"),
        }
        return cls.model_validate({key: value for key, value in values.items() if value is not None})
