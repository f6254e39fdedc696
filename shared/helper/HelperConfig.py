"""Central configuration helper for the Onshape gallery sync."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from shared.models.config import AuthorDefaults, SyncSettings

ROOT_DIR = Path(__file__).resolve().parent.parent.parent


def load_env_file(env_file: str | Path | None = None) -> Path | None:
    """Load the first .env file found into the process environment.

    Real environment variables always win over values from the file.

    Args:
        env_file (str | Path | None): Explicit file to load. If omitted, ./.env and <repo root>/.env are tried in that order.

    Returns:
        Path | None: The loaded file, or None if no file was found.
    """
    candidates = [Path(env_file)] if env_file else [Path.cwd() / ".env", ROOT_DIR / ".env"]
    for candidate in candidates:
        if candidate.is_file():
            load_dotenv(candidate, override=False)
            return candidate
    return None


class HelperConfig:
    """
    Typed access to settings held in environment variables.

    Every getter treats an empty variable like an unset one. A getter called
    without a default makes the setting mandatory and raises ValueError when
    it is missing.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _read(self, key: str, has_default: bool) -> str | None:
        name = key.upper()
        raw = (os.getenv(name) or "").strip()
        if not raw and not has_default:
            raise ValueError(f"Required setting '{name}' is missing from the environment.")
        return raw or None

    def get_string_val(self, key: str, default: str | None = None) -> str:
        raw = self._read(key, default is not None)
        return default if raw is None else raw

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Parse an int, or a float when the value contains a dot."""
        raw = self._read(key, default is not None)
        if raw is None:
            return default
        try:
            return float(raw) if "." in raw else int(raw)
        except ValueError:
            raise ValueError(f"Setting '{key.upper()}' expects a number, got '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """"true", "1" and "yes" (any case) are true, everything else is false."""
        raw = self._read(key, default is not None)
        if raw is None:
            return default
        return raw.lower() in ("true", "1", "yes")

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",", element_type: type = str) -> list:
        """
        Parse a bracketed list such as ``[indexed,released]``.

        Args:
            key (str): Variable name, case-insensitive.
            default (list[str] | None): Returned when the variable is unset.
            separator (str): Element delimiter inside the brackets.
            element_type (type): Callable each element is converted with.
        """
        raw = self._read(key, default is not None)
        if raw is None:
            return default
        if not (raw.startswith("[") and raw.endswith("]")):
            raise ValueError(f"Setting '{key.upper()}' must look like '[a{separator}b]', got '{raw}'.")
        items = [part.strip() for part in raw[1:-1].split(separator) if part.strip()]
        try:
            return [element_type(item) for item in items]
        except ValueError as exc:
            raise ValueError(f"Setting '{key.upper()}' has an element that is not {element_type.__name__}: {exc}")

    def get_path_val(self, key: str, default: str | Path | None = None) -> Path:
        """Absolute path; relative values resolve against the working directory."""
        raw = self.get_string_val(key, default=None if default is None else str(default))
        return Path(raw).expanduser().resolve()

    def get_sync_settings(self) -> SyncSettings:
        """Collect everything the sync services need into one immutable settings object.

        Returns:
            SyncSettings: Directories, author defaults and batch tuning values.
        """
        return SyncSettings(
            content_dir=self.get_path_val("CONTENT_DIR", default="./content/documents"),
            images_dir=self.get_path_val("IMAGES_DIR", default="./content/images"),
            pdf_dir=self.get_path_val("PDF_DIR", default="./public/pdf"),
            gallery_dir=self.get_path_val("GALLERY_DIR", default="./public"),
            author=AuthorDefaults(
                name=self.get_string_val("AUTHOR_NAME", default="Unknown"),
                email=self.get_string_val("AUTHOR_EMAIL", default=""),
                website=self.get_string_val("AUTHOR_WEBSITE", default=""),
            ),
            thumbnail_size=self.get_string_val("THUMBNAIL_SIZE", default="600x340"),
            upload_delay_seconds=self.get_number_val("UPLOAD_DELAY_SECONDS", default=2.0),
            keep_prior_on_error=self.get_bool_val("SYNC_KEEP_PRIOR_ON_ERROR", default=False),
            default_template=self.get_string_val("PDF_TEMPLATE", default="technical-documentation"),
            web_base_url=self.get_string_val("CAD_ONSHAPE_BASE_URL", default="https://cad.onshape.com"),
        )

    def get_logger(self) -> logging.Logger:
        """Return the application logger."""
        return self._logger
