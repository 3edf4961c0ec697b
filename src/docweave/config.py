"""Configuration: the JSON index file and environment-driven runtime settings."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docweave.errors import ConfigError


class SourceConfig(BaseModel):
    """Where documents of one key come from."""

    key: str = Field(min_length=1)
    kind: Literal["local", "confluence"]
    source: str = Field(min_length=1, description="Base directory (local) or Confluence base URL")
    space: str | None = Field(default=None, description="Confluence space key")
    context: str | None = Field(default=None, description="Confluence context path, e.g. 'confluence'")

    @field_validator("kind", mode="before")
    @classmethod
    def _asciidoc_is_local(cls, value: object) -> object:
        return "local" if value == "asciidoc" else value

    @model_validator(mode="after")
    def _confluence_needs_space(self) -> SourceConfig:
        if self.kind == "confluence" and not (self.space and self.space.strip()):
            raise ValueError(f"confluence source '{self.key}' needs a non-blank 'space'")
        return self

    @property
    def base_url(self) -> str:
        """Confluence context root: ``source`` joined with ``context``."""
        base = self.source.rstrip("/") + "/"
        if self.context and self.context.strip("/"):
            base += self.context.strip("/") + "/"
        return base


class NodeConfig(BaseModel):
    """One document of the generated deliverable, in output order."""

    key: str = Field(min_length=1)
    index: str = Field(min_length=1, description="File path (local) or page title (Confluence)")
    sections: list[str] | None = Field(default=None, description="Headings whose content is kept")

    @field_validator("sections", mode="before")
    @classmethod
    def _sections_must_be_a_list(cls, value: object) -> object:
        if value in (None, ""):
            return None
        if not isinstance(value, list):
            raise ValueError("'sections' must be a list of heading texts")
        return value


class DocConfig(BaseModel):
    sources: list[SourceConfig]
    nodes: list[NodeConfig]

    @model_validator(mode="after")
    def _keys_are_consistent(self) -> DocConfig:
        seen: set[str] = set()
        for source in self.sources:
            if source.key in seen:
                raise ValueError(f"duplicate source key '{source.key}'")
            seen.add(source.key)
        for node in self.nodes:
            if node.key not in seen:
                raise ValueError(f"node '{node.index}' refers to unknown source key '{node.key}'")
        return self

    def source_for(self, key: str) -> SourceConfig:
        for source in self.sources:
            if source.key == key:
                return source
        raise ConfigError(f"Unknown source key: {key}")


def load_config(path: Path) -> DocConfig:
    """Read and validate a JSON index file."""
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file {path} is not valid JSON: {exc}") from exc

    try:
        return DocConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config file {path}:\n{exc}") from exc


class Settings(BaseSettings):
    """Runtime settings read from ``DOCWEAVE_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="DOCWEAVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    confluence_username: str | None = Field(default=None, description="Confluence basic-auth user")
    confluence_password: str | None = Field(default=None, description="Confluence basic-auth password")
    confluence_cookie: str | None = Field(
        default=None, description="Raw Cookie header ('name=value; other=value') used instead of credentials"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_format: Literal["console", "json"] = Field(default="console")

    max_depth: int = Field(default=200, ge=1, le=400, description="Deepest markup nesting accepted")
    request_timeout: float = Field(default=30.0, gt=0)

    def cookies(self) -> dict[str, str]:
        """Parse ``confluence_cookie`` into a name/value mapping."""
        cookies: dict[str, str] = {}
        for part in (self.confluence_cookie or "").split(";"):
            name, sep, value = part.strip().partition("=")
            if sep and name:
                cookies[name] = value
        return cookies
