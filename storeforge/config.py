"""Configuration objects for storeforge.

Settings are read from the environment once at startup with `from_env` and
then passed explicitly to the objects that need them. Most variables carry the
`STOREFORGE_` prefix, e.g. `STOREFORGE_DOMAIN_SUFFIX` or
`STOREFORGE_ADMIN_PASSWORD`. `PORT` and `KUBECTL_BIN` are read without it.
"""

from collections.abc import Mapping
import logging
import os
from pathlib import Path
import shutil
import sys

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import StoreForgeException

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "BootstrapConfig",
    "StoreForgeConfig",
    "resolve_helm_bin",
]

DEFAULT_PORT = 3001
DEFAULT_CHART_PATH = "charts/universal-store"
CHART_NAME = "universal-store"
CHART_VERSION = "0.2.0"
SUPPORTED_ENGINES = ("woocommerce",)
PLANNED_ENGINES = ("medusa",)
DEFAULT_ENGINE = "woocommerce"

ENV_PREFIX = "STOREFORGE_"


def resolve_helm_bin(env: Mapping[str, str] | None = None) -> str:
    """Find the helm executable.

    The lookup order is the `HELM_INSTALL_DIR` environment variable, then the
    well known install location for the platform, then the search path.
    """
    if env is None:
        env = os.environ
    exe = "helm.exe" if sys.platform == "win32" else "helm"
    if install_dir := env.get("HELM_INSTALL_DIR"):
        candidate = Path(install_dir) / exe
        if candidate.is_file():
            return str(candidate)
        _LOGGER.warning("HELM_INSTALL_DIR set but %s does not exist", candidate)
    if sys.platform == "win32":
        well_known = Path(env.get("ProgramFiles", r"C:\Program Files")) / "helm" / exe
    else:
        well_known = Path("/usr/local/bin") / exe
    if well_known.is_file():
        return str(well_known)
    return shutil.which("helm") or "helm"


def _default_kubectl_bin() -> str:
    return shutil.which("kubectl") or "kubectl"


class BootstrapConfig(BaseSettings):
    """Configuration for the in-workload WordPress/WooCommerce bootstrap."""

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, extra="ignore")

    selector: str = "app.kubernetes.io/component=wordpress"
    """Label selector for the application pod."""

    container: str = "wordpress"
    """Container inside the pod that runs commands."""

    wp_path: str = "/var/www/html"
    """WordPress document root inside the container."""

    admin_user: str = "admin"
    admin_password: str = "admin123"
    admin_email: str = "admin@example.com"

    plugin: str = "woocommerce"
    theme: str = "storefront"
    options: dict[str, str] = Field(
        default_factory=lambda: {
            "woocommerce_currency": "USD",
            "woocommerce_default_country": "US:CA",
        }
    )
    """WordPress options written after the plugin is active."""

    payload_path: Path | None = None
    """Setup script evaluated at the end, defaults to the packaged one."""

    ready_timeout: float = 300
    poll_interval: float = 5
    exec_timeout: float = 180

    db_attempts: int = 20
    tool_attempts: int = 3
    plugin_attempts: int = 5
    theme_attempts: int = 3
    option_attempts: int = 3
    payload_attempts: int = 3
    retry_delay: float = 15
    """Fixed delay between attempts of a retried step."""

    grace_delay: float = 30
    """Extra wait after the database answers, before installing WordPress."""


class StoreForgeConfig(BaseSettings):
    """Top level configuration for the service."""

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, extra="ignore")

    port: int = Field(DEFAULT_PORT, validation_alias=AliasChoices("port", "PORT"))
    chart_path: Path = Field(Path(DEFAULT_CHART_PATH), validate_default=True)
    chart_name: str = CHART_NAME
    chart_version: str = CHART_VERSION
    domain_suffix: str = "local"
    helm_bin: str = Field(default_factory=resolve_helm_bin)
    kubectl_bin: str = Field(
        default_factory=_default_kubectl_bin,
        validation_alias=AliasChoices("kubectl_bin", "KUBECTL_BIN"),
    )
    install_timeout: float = 660
    command_timeout: float = 120
    bootstrap: BootstrapConfig = Field(default_factory=BootstrapConfig)

    @field_validator("chart_path")
    @classmethod
    def resolve_chart_path(cls, value: Path) -> Path:
        """Make the chart path absolute."""
        return value.resolve()

    @property
    def chart_ref(self) -> str:
        """Chart reference as reported by `helm list`."""
        return f"{self.chart_name}-{self.chart_version}"

    def store_url(self, name: str) -> str:
        """Public URL of a store."""
        return f"http://{name}.{self.domain_suffix}"

    def check(self) -> None:
        """Log configuration problems that are not fatal at startup."""
        if not self.chart_path.exists():
            _LOGGER.error("CRITICAL: Chart path not found at %s", self.chart_path)
        else:
            _LOGGER.info("Chart path verified: %s", self.chart_path)

    @classmethod
    def from_env(cls) -> "StoreForgeConfig":
        """Build the configuration from environment variables.

        Raises:
            StoreForgeException: A variable holds a value of the wrong type.
        """
        try:
            return cls()
        except ValidationError as err:
            raise StoreForgeException(f"Invalid configuration: {err}") from err
