"""
Module: editor.config

Purpose:
    Configuration dataclass for the editor. Immutable configuration with
    validation on construction, loadable from environment variables.

Key Classes:
    - EditorConfig: API endpoint, local data directory, upload concurrency

Dependencies:
    - dataclasses (std)
    - pathlib (std)

Used By:
    - editor.session: Upload worker count
    - gui.app: Client, token store and autosave wiring
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_API_URL = "http://localhost:5000/api/v1"
DEFAULT_DATA_DIR = Path.home() / ".exam_studio"

ENV_API_URL = "EXAM_STUDIO_API_URL"
ENV_DATA_DIR = "EXAM_STUDIO_DATA_DIR"
ENV_UPLOAD_WORKERS = "EXAM_STUDIO_UPLOAD_WORKERS"


@dataclass(frozen=True)
class EditorConfig:
    """
    Editor configuration (immutable).

    Attributes:
        api_base_url: REST API root
        data_dir: Directory for the token store and autosave snapshots
        image_upload_workers: Thread pool size for the image upload batch
        request_timeout: Seconds per HTTP request
        autosave_interval_ms: GUI autosave timer period

    Example:
        >>> config = EditorConfig(api_base_url="https://api.example.com/v1")
        >>> config.image_upload_workers
        4
    """

    api_base_url: str = DEFAULT_API_URL
    data_dir: Path = DEFAULT_DATA_DIR
    image_upload_workers: int = 4
    request_timeout: float = 30.0
    autosave_interval_ms: int = 30_000

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if not self.api_base_url.startswith(("http://", "https://")):
            raise ValueError(f"api_base_url must be an http(s) URL: {self.api_base_url!r}")
        if self.image_upload_workers < 1:
            raise ValueError(f"image_upload_workers must be at least 1: {self.image_upload_workers}")
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive: {self.request_timeout}")
        if self.autosave_interval_ms < 0:
            raise ValueError(f"autosave_interval_ms must be non-negative: {self.autosave_interval_ms}")
        object.__setattr__(self, "data_dir", Path(self.data_dir))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EditorConfig":
        """
        Build a config from EXAM_STUDIO_* variables, defaults for the rest.

        Raises:
            ValueError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ
        kwargs = {}
        if env.get(ENV_API_URL):
            kwargs["api_base_url"] = env[ENV_API_URL].rstrip("/")
        if env.get(ENV_DATA_DIR):
            kwargs["data_dir"] = Path(env[ENV_DATA_DIR]).expanduser()
        if env.get(ENV_UPLOAD_WORKERS):
            try:
                kwargs["image_upload_workers"] = int(env[ENV_UPLOAD_WORKERS])
            except ValueError:
                raise ValueError(
                    f"{ENV_UPLOAD_WORKERS} must be an integer: {env[ENV_UPLOAD_WORKERS]!r}"
                ) from None
        return cls(**kwargs)

    @property
    def storage_path(self) -> Path:
        return self.data_dir / "local_storage.json"

    @property
    def autosave_dir(self) -> Path:
        return self.data_dir / "autosave"
