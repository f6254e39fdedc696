from pathlib import Path

from pydantic import BaseModel, ConfigDict


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter required by a client.

    Attributes:
        env_key (str): The raw key of the environment variable, without the client prefix.
        val_type (str): The expected type of the value. Supported types are "string", "number", "bool" and "list".
        default (str | int | float | bool | list | None): Value used if the variable is not set. If None, the variable is required.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None


class AuthorDefaults(BaseModel):
    """Author written into new records when the user has not set one."""

    name: str = "Unknown"
    email: str = ""
    website: str = ""


class SyncSettings(BaseModel):
    """
    Settings consumed by the sync services. Built once from the environment and passed in explicitly,
    so nothing below the entry points reads environment variables during a merge.
    """
    model_config = ConfigDict(frozen=True)

    content_dir: Path
    images_dir: Path
    pdf_dir: Path
    gallery_dir: Path
    author: AuthorDefaults = AuthorDefaults()
    thumbnail_size: str = "600x340"
    upload_delay_seconds: float = 2.0
    keep_prior_on_error: bool = False
    default_template: str = "technical-documentation"
    web_base_url: str = "https://cad.onshape.com"
