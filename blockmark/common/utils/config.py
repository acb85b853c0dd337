"""
Load configuration from `config.toml`.
"""

from pathlib import Path
from pydantic import BaseModel, field_validator

THIS_DIR = Path(__file__).parent.resolve()

CONFIG_FILE_PATH = THIS_DIR / "config.toml"


class Config(BaseModel):
    key_buffer_size: int  # 0 = longest trigger length
    fence_min_length: int
    fence_chars: list[str]
    table_default_columns: int
    table_default_rows: int
    default_image_alt: str
    code_tab: str
    highlight_code: bool

    @field_validator("key_buffer_size", "table_default_rows", mode="before")
    def not_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("Value must not be negative.")
        return value

    @field_validator("table_default_columns", mode="before")
    def at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError("A table needs at least one column.")
        return value

    @field_validator("fence_min_length", mode="before")
    def fence_length(cls, value: int) -> int:
        if value < 3:
            raise ValueError("Code fences are at least three characters long.")
        return value

    @field_validator("fence_chars", mode="before")
    def single_characters(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one fence character is required.")
        for char in v:
            if len(char) != 1:
                raise ValueError(f"Invalid fence character: {char!r}")
        return v


def load_config(path: Path = CONFIG_FILE_PATH) -> Config:
    import tomli

    with open(path, "rb") as f:
        data = tomli.load(f)

    config_data = {k.lower(): v for k, v in data.items()}
    return Config(**config_data)


config = load_config()


def set_config(new_config: Config) -> None:
    global config
    config = new_config


def get_config() -> Config:
    """Return the active config; modules call this so ``set_config`` takes effect."""
    return config


__all__ = ["Config", "config", "get_config", "load_config", "set_config"]
