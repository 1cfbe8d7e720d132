"""Environment configuration — read once, then frozen into ``BuildConfig``.

Every pipeline toggle can be set through the environment.  The bare names
used by existing build scripts (``QT_ROOT``, ``ALLOW_HOMEBREW_QT``, ...)
are accepted alongside the ``BUNDLEFORGE_`` prefixed form.

Examples
--------
Build against an installer kit with translations::

    export QT_ROOT="$HOME/Qt/6.10.0/macos"
    export WITH_TRANSLATIONS=1

Or via .env file::

    BUNDLEFORGE_LOG_LEVEL=DEBUG
    RUN_SELF_CHECKS=0

An empty variable counts as unset.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env(name: str) -> AliasChoices:
    return AliasChoices(f"BUNDLEFORGE_{name}", name)


class ForgeSettings(BaseSettings):
    """Environment-driven settings.

    Only ``BuildConfig.from_settings`` should read these; stages receive
    the frozen ``BuildConfig`` instead.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BUNDLEFORGE_",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        env_ignore_empty=True,
    )

    # Toolkit
    qt_root: Path | None = Field(default=None, validation_alias=_env("QT_ROOT"))
    allow_homebrew_qt: bool = Field(
        default=False, validation_alias=_env("ALLOW_HOMEBREW_QT")
    )

    # Feature toggles
    with_translations: bool = Field(
        default=False, validation_alias=_env("WITH_TRANSLATIONS")
    )
    build_server: bool = Field(default=False, validation_alias=_env("BUILD_SERVER"))
    run_self_checks: bool = Field(
        default=True, validation_alias=_env("RUN_SELF_CHECKS")
    )

    # Runtime
    source_root: Path = Path(".")
    log_level: str = "INFO"

    # External tool timeouts (seconds)
    tool_timeout_seconds: float = 600.0
    build_timeout_seconds: float = 7200.0
    fetch_timeout_seconds: float = 300.0
    smoke_timeout_seconds: float = 30.0
