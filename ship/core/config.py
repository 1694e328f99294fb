"""Typed release configuration.

Configuration lives in an optional ``ship.toml`` at the project root:

    [release]
    production_tag = "theduke/awesomelify:production"
    profile = "release"

    [build]
    flake = "."
    out_link = "result"

    [build.attrs]
    release = "dockerImage"
    debug = "dockerImageDebug"

    [source]
    paths = ["Cargo.toml", "Cargo.lock", "src"]
    lock_file = "Cargo.lock"

    [timeouts]
    build = 3600
    load = 600
    tag = 60
    push = 1800

    [tools]
    nix = "nix"
    docker = "docker"
    cargo = "cargo"

``SHIP_PRODUCTION_TAG`` and ``SHIP_PROFILE`` override the file; command-line
options override both. Registry credentials are deliberately absent: they
reach ``docker`` through the process environment untouched.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from ship.pipeline.model import BuildProfile, TagName, parse_tag

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_number, get_str, get_str_list, get_table

__all__ = [
    "ReleaseConfig",
    "BuildConfig",
    "SourceConfig",
    "TimeoutsConfig",
    "ToolsConfig",
    "ConfigError",
    "load_config",
    "apply_overrides",
    "parse_profile",
    "CONFIG_FILE_NAME",
    "DEFAULT_PRODUCTION_TAG",
]

CONFIG_FILE_NAME = "ship.toml"
DEFAULT_PRODUCTION_TAG = TagName(repository="theduke/awesomelify", tag="production")

ENV_PRODUCTION_TAG = "SHIP_PRODUCTION_TAG"
ENV_PROFILE = "SHIP_PROFILE"

# -----------------------------------------------------------------------------
# Default stage timeouts (seconds)
# -----------------------------------------------------------------------------

BUILD_TIMEOUT_SECONDS = 60 * 60.0
LOAD_TIMEOUT_SECONDS = 10 * 60.0
TAG_TIMEOUT_SECONDS = 60.0
PUSH_TIMEOUT_SECONDS = 30 * 60.0


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or is invalid."""

    message: str
    path: Path | None = None


def _default_attrs() -> dict[BuildProfile, str]:
    return {
        BuildProfile.RELEASE: "dockerImage",
        BuildProfile.DEBUG: "dockerImageDebug",
    }


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """How the package builder is invoked."""

    flake: str = "."
    attrs: Mapping[BuildProfile, str] = field(default_factory=_default_attrs)
    out_link: str = "result"

    def attr_for(self, profile: BuildProfile) -> str:
        return self.attrs.get(profile) or _default_attrs()[profile]


@dataclass(frozen=True, slots=True)
class SourceConfig:
    """Allow-list of paths that make up the source tree."""

    paths: tuple[str, ...] = ("Cargo.toml", "Cargo.lock", "src")
    lock_file: str = "Cargo.lock"


@dataclass(frozen=True, slots=True)
class TimeoutsConfig:
    build: float = BUILD_TIMEOUT_SECONDS
    load: float = LOAD_TIMEOUT_SECONDS
    tag: float = TAG_TIMEOUT_SECONDS
    push: float = PUSH_TIMEOUT_SECONDS


@dataclass(frozen=True, slots=True)
class ToolsConfig:
    nix: str = "nix"
    docker: str = "docker"
    cargo: str = "cargo"


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Main configuration container, passed explicitly to the pipeline."""

    production_tag: TagName = DEFAULT_PRODUCTION_TAG
    profile: BuildProfile = BuildProfile.RELEASE
    build: BuildConfig = field(default_factory=BuildConfig)
    source: SourceConfig = field(default_factory=SourceConfig)
    timeouts: TimeoutsConfig = field(default_factory=TimeoutsConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)

    @property
    def flake_attr(self) -> str:
        return self.build.attr_for(self.profile)


def parse_profile(value: str) -> Result[BuildProfile, str]:
    try:
        return Ok(BuildProfile(value.strip().lower()))
    except ValueError:
        choices = ", ".join(p.value for p in BuildProfile)
        return Err(f"unknown build profile '{value}' (expected one of: {choices})")


def _parse_timeouts(table: StrDict) -> Result[TimeoutsConfig, str]:
    defaults = TimeoutsConfig()
    values: dict[str, float] = {}
    for name in ("build", "load", "tag", "push"):
        if name not in table:
            values[name] = getattr(defaults, name)
            continue
        number = get_number(table, name)
        if number is None or number <= 0:
            return Err(f"timeouts.{name} must be a positive number of seconds")
        values[name] = number
    return Ok(TimeoutsConfig(**values))


def _parse_attrs(table: StrDict) -> Result[dict[BuildProfile, str], str]:
    attrs = _default_attrs()
    for key in table:
        profile = parse_profile(key)
        if isinstance(profile, Err):
            return Err(f"build.attrs: {profile.error}")
        attr = get_str(table, key)
        if attr is None:
            return Err(f"build.attrs.{key} must be a non-empty string")
        attrs[profile.value] = attr
    return Ok(attrs)


def config_from_dict(data: Mapping[str, object]) -> Result[ReleaseConfig, str]:
    """Build a ReleaseConfig from parsed TOML, filling in defaults."""
    release: StrDict = get_table(data, "release") or {}
    build: StrDict = get_table(data, "build") or {}
    source: StrDict = get_table(data, "source") or {}
    timeouts: StrDict = get_table(data, "timeouts") or {}
    tools: StrDict = get_table(data, "tools") or {}

    production_tag = DEFAULT_PRODUCTION_TAG
    tag_text = get_str(release, "production_tag")
    if tag_text is not None:
        tag = parse_tag(tag_text)
        if isinstance(tag, Err):
            return Err(f"release.production_tag: {tag.error}")
        production_tag = tag.value

    profile = BuildProfile.RELEASE
    profile_text = get_str(release, "profile")
    if profile_text is not None:
        parsed_profile = parse_profile(profile_text)
        if isinstance(parsed_profile, Err):
            return Err(f"release.profile: {parsed_profile.error}")
        profile = parsed_profile.value

    attrs = _parse_attrs(get_table(build, "attrs") or {})
    if isinstance(attrs, Err):
        return attrs

    paths = SourceConfig().paths
    if "paths" in source:
        listed = get_str_list(source, "paths")
        if not listed:
            return Err("source.paths must be a non-empty list of paths")
        paths = listed

    parsed_timeouts = _parse_timeouts(timeouts)
    if isinstance(parsed_timeouts, Err):
        return parsed_timeouts

    default_tools = ToolsConfig()
    return Ok(
        ReleaseConfig(
            production_tag=production_tag,
            profile=profile,
            build=BuildConfig(
                flake=get_str(build, "flake") or ".",
                attrs=attrs.value,
                out_link=get_str(build, "out_link") or "result",
            ),
            source=SourceConfig(
                paths=paths,
                lock_file=get_str(source, "lock_file") or SourceConfig().lock_file,
            ),
            timeouts=parsed_timeouts.value,
            tools=ToolsConfig(
                nix=get_str(tools, "nix") or default_tools.nix,
                docker=get_str(tools, "docker") or default_tools.docker,
                cargo=get_str(tools, "cargo") or default_tools.cargo,
            ),
        )
    )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[ReleaseConfig, ConfigError]:
    """Load configuration from ``path``; defaults if the file is absent."""
    if not path.exists():
        return Ok(ReleaseConfig())

    parsed = _parse_toml(path)
    if isinstance(parsed, Err):
        return parsed

    config = config_from_dict(parsed.value)
    if isinstance(config, Err):
        return Err(ConfigError(f"Invalid config: {config.error}", path=path))
    return config


def apply_overrides(
    config: ReleaseConfig,
    env: Mapping[str, str],
    *,
    tag: str | None = None,
    profile: str | None = None,
) -> Result[ReleaseConfig, ConfigError]:
    """Layer environment and command-line overrides on top of ``config``.

    Command-line values win over environment values.
    """
    tag_text = tag or env.get(ENV_PRODUCTION_TAG) or None
    if tag_text:
        parsed_tag = parse_tag(tag_text)
        if isinstance(parsed_tag, Err):
            return Err(ConfigError(f"production tag: {parsed_tag.error}"))
        config = replace(config, production_tag=parsed_tag.value)

    profile_text = profile or env.get(ENV_PROFILE) or None
    if profile_text:
        parsed_profile = parse_profile(profile_text)
        if isinstance(parsed_profile, Err):
            return Err(ConfigError(parsed_profile.error))
        config = replace(config, profile=parsed_profile.value)

    return Ok(config)
