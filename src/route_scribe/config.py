"""Documentation settings.

Values are resolved from, highest precedence first: keyword overrides, a
YAML config file, ``ROUTE_SCRIBE_*`` environment variables, then the
defaults below.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from route_scribe.discovery.scanner import DEFAULT_EXTENSIONS, DEFAULT_ROUTER_FACTORIES

logger = logging.getLogger(__name__)


class Contact(BaseModel):
    name: str | None = None
    url: str | None = None
    email: str | None = None


class License(BaseModel):
    name: str
    url: str | None = None


class InfoOverrides(BaseModel):
    """Fields of the document's ``info`` block that replace the top-level defaults."""

    title: str | None = None
    version: str | None = None
    description: str | None = None
    contact: Contact | None = None
    license: License | None = None


class DocsConfig(BaseSettings):
    """Settings for discovery, rendering and the documentation endpoint."""

    title: str = Field(default="API Documentation", description="Document title.")
    version: str = Field(default="1.0.0", description="API version string.")
    description: str = Field(
        default="Auto-generated API documentation",
        description="Document description.",
    )
    route: str = Field(
        default="/swagger-ui",
        description="Where the viewer is served; the document lives at <route>/openapi.json.",
    )
    exclude_paths: list[str] = Field(
        default_factory=list,
        description="Path prefixes never documented.",
    )
    info: InfoOverrides = Field(default_factory=InfoOverrides)

    # Static scanning
    source_dir: str = Field(default="./src", description="Root of the source tree to scan.")
    extensions: list[str] = Field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    router_factories: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ROUTER_FACTORIES),
        description="Constructor names that create a router or application.",
    )

    model_config = SettingsConfigDict(
        env_prefix="ROUTE_SCRIBE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @property
    def spec_route(self) -> str:
        return self.route.rstrip("/") + "/openapi.json"


def load_config(path: str | Path | None = None, **overrides) -> DocsConfig:
    """Build a DocsConfig from an optional YAML file plus keyword overrides.

    ``None`` overrides are ignored so CLI options left unset fall through.
    """
    values: dict = {}
    if path is not None:
        path = Path(path)
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping at the top level")
        values.update(data)
        logger.debug("Loaded config from %s", path)

    values.update({k: v for k, v in overrides.items() if v is not None})
    return DocsConfig(**values)
