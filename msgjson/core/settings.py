"""Unified settings for msg-to-json-api."""

import tomllib
from pathlib import Path
from typing import ClassVar

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def read_pyproject(pyproject_path: Path) -> dict:
    """Read pyproject.toml into a dict, empty when the file is not shipped."""
    if not pyproject_path.is_file():
        return {}
    with pyproject_path.open("rb") as file_handle:
        return tomllib.load(file_handle)


def get_version(base_dir: Path) -> str:
    """Get version from git tags or fallback to package metadata."""
    try:
        import git

        repo = git.Repo(base_dir, search_parent_directories=True)
        latest_tag = max(repo.tags, key=lambda t: t.commit.committed_datetime, default=None)
        return str(latest_tag) if latest_tag else "0.0.0"
    except Exception:
        try:
            import importlib.metadata

            return importlib.metadata.version("msg-to-json-api")
        except Exception:
            return "0.0.0"


class Settings(BaseSettings):
    """Unified settings for the msg-to-json conversion service."""

    DEBUG: bool = True

    # ClassVar to prevent Pydantic from trying to load from env
    BASE_DIR: ClassVar[Path] = Path(__file__).parent.parent.parent
    PROJECT: ClassVar[dict] = read_pyproject(BASE_DIR / "pyproject.toml")
    API_NAME: ClassVar[str] = PROJECT.get("project", {}).get("name", "msg-to-json-api")
    API_DESCRIPTION: ClassVar[str] = PROJECT.get("project", {}).get(
        "description", "Outlook .msg to JSON conversion API"
    )
    API_VERSION: ClassVar[str] = get_version(BASE_DIR)

    # Server, loopback only
    API_HOST: str = "127.0.0.1"
    API_PORT: int = Field(
        default=3000,
        validation_alias=AliasChoices("FUNCTIONS_CUSTOMHANDLER_PORT", "API_PORT"),
    )

    # Uploads, 20 MiB ceiling on the whole request body
    MAX_UPLOAD_SIZE: int = Field(default=20_971_520, gt=0)

    # Converter process pool, 0 means one worker per CPU
    MAX_WORKERS: int = Field(default=0, ge=0)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()  # type: ignore
