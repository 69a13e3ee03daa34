"""Application settings loaded from environment variables via pydantic-settings.

Values are read from (in priority order) environment variables and then a
``.env`` file in the working directory.  Field ``igc_host`` maps to env var
``IGC_HOST`` and so on.  List values such as ``LIMIT_TO_PROJECTS`` are given
as JSON, e.g. ``LIMIT_TO_PROJECTS='["dstage1", "dstage2"]'``.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from stagelineage.models.lineage import LineageMode


class Settings(BaseSettings):
    """stagelineage application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Metadata repository (IGC REST API) ===
    igc_host: str = "localhost"
    igc_port: int = 9443
    igc_username: str = ""
    igc_password: str = ""
    igc_verify_ssl: bool = True
    igc_page_size: int = Field(default=100, gt=0)
    igc_timeout: float = Field(default=60.0, gt=0)

    # === Synchronisation scope ===
    lineage_mode: LineageMode = LineageMode.JOB_LEVEL
    limit_to_projects: list[str] = Field(default_factory=list)
    limit_to_lineage_enabled: bool = False

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    @property
    def igc_base_url(self) -> str:
        """Root of the IGC REST API, without a trailing slash."""
        return f"https://{self.igc_host}:{self.igc_port}/ibm/iis/igc-rest/v1"

    def has_credentials(self) -> bool:
        """Return ``True`` when both a username and a password are configured."""
        return bool(self.igc_username and self.igc_password)
