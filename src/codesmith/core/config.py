"""Configuration models used by the code block renderer.

RendererConfig

`themes` (`list[Any]`)
: Themes to render for, in order. Accepts Pygments style names, Pygments style
  classes, VS Code compatible theme mappings and :class:`Theme` instances. The
  first theme is the default appearance.

`plugins` (`list[Plugin]`)
: Additional plugins, registered after the built-in ones.

`style_overrides` (`dict[str, Any]`)
: User style settings, the highest-priority layer.

`default_locale` (`str`)
: Locale used when neither the block nor ``get_block_locale`` provides one.

`use_dark_mode_media_query` (`bool | None`)
: Emit a ``prefers-color-scheme`` block switching between a dark and a light
  theme. ``None`` enables it when exactly one dark and one light theme are
  configured.

`theme_css_selector` (`str | None`)
: Selector template activating a specific theme, ``{name}`` is replaced by the
  slugified theme name. ``None`` disables explicit selectors.

`tab_width` (`int`)
: Number of spaces replacing each tab character; ``0`` keeps tabs.

`get_block_locale` (`Callable | None`)
: Callback ``(code, language, meta, document) -> str | None`` returning the
  locale of a block.

`syntax_highlighting`, `text_markers` (`bool`)
: Toggle the corresponding built-in plugins.

`frames` (`bool | FramesOptions`)
: Toggle or configure the frames plugin. Titles from file name comments,
  which remove those lines, are enabled with
  ``FramesOptions(extract_file_name_from_code=True)``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
import yaml

from .exceptions import ConfigError
from .plugins import Plugin


DEFAULT_THEMES: tuple[str, ...] = ("github-dark", "default")


class FramesOptions(BaseModel):
    """Options of the built-in frames plugin."""

    model_config = ConfigDict(extra="forbid")

    extract_file_name_from_code: bool = Field(
        default=False,
        description="Use a file name comment on the first line as title and remove it",
    )
    show_copy_to_clipboard_button: bool = Field(
        default=True, description="Add a copy button backed by a script module"
    )


class RendererConfig(BaseModel):
    """Validated options accepted by :func:`create_renderer`."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    themes: list[Any] = Field(default_factory=lambda: list(DEFAULT_THEMES))
    plugins: list[Any] = Field(default_factory=list)
    style_overrides: dict[str, Any] = Field(default_factory=dict)
    default_locale: str = "en-US"
    use_dark_mode_media_query: bool | None = None
    theme_css_selector: str | None = "[data-theme='{name}']"
    tab_width: int = Field(default=2, ge=0)
    get_block_locale: Callable[..., str | None] | None = None
    syntax_highlighting: bool = True
    frames: bool | FramesOptions = True
    text_markers: bool = True

    @field_validator("themes")
    @classmethod
    def _require_themes(cls, value: list[Any]) -> list[Any]:
        if not value:
            raise ValueError("at least one theme is required")
        return value

    @field_validator("plugins")
    @classmethod
    def _require_plugins(cls, value: list[Any]) -> list[Any]:
        for entry in value:
            if not isinstance(entry, Plugin):
                raise ValueError(f"expected Plugin instances, got {type(entry).__name__}")
        return value

    @field_validator("default_locale")
    @classmethod
    def _require_locale(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("default_locale cannot be empty")
        return value.strip()

    @property
    def frames_options(self) -> FramesOptions | None:
        """Return the frames options, or ``None`` when frames are disabled."""
        if self.frames is False:
            return None
        if self.frames is True:
            return FramesOptions()
        return self.frames


def build_config(
    config: RendererConfig | Mapping[str, Any] | None = None, **options: Any
) -> RendererConfig:
    """Validate configuration input, raising :class:`ConfigError` on failure."""
    if isinstance(config, RendererConfig):
        if not options:
            return config
        payload: dict[str, Any] = {**dict(config), **options}
    else:
        payload = {**dict(config or {}), **options}
    try:
        return RendererConfig.model_validate(payload)
    except PydanticValidationError as exc:
        raise ConfigError(f"Invalid renderer configuration: {exc}") from exc


def load_config(path: Path | str) -> RendererConfig:
    """Load a YAML or JSON configuration file."""
    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Unable to read configuration file '{source}'") from exc
    try:
        if source.suffix.lower() == ".json":
            payload = json.loads(text)
        else:
            payload = yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as exc:
        raise ConfigError(f"Invalid configuration file '{source}'") from exc
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise ConfigError(f"Configuration file '{source}' must contain a mapping")
    return build_config(payload)


__all__ = ["DEFAULT_THEMES", "FramesOptions", "RendererConfig", "build_config", "load_config"]
