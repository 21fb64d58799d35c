from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from config import ConfigurationSet, config_from_dict, config_from_env, config_from_yaml

from draft_room.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable


T = TypeVar("T")


_DEFAULTS: dict[str, object] = {
    "db": {
        "path": "draft_room.db",
        "pool_size": 5,
        "busy_timeout": 5.0,
    },
    "draft": {
        "default_pick_timer_seconds": 60,
        "pick_timer_min": 5,
        "pick_timer_max": 3600,
        "round_count_min": 1,
        "round_count_max": 50,
        "watchlist_limit": 200,
        "auto_pick_page_size": 100,
        "auto_pick_max_pages": 20,
    },
    "pool": {
        "default_limit": 50,
        "max_limit": 1000,
    },
    "server": {
        "host": "127.0.0.1",
        "port": 5000,
    },
}


@dataclass(frozen=True)
class DraftRoomSettings:
    db_path: str = "draft_room.db"
    db_pool_size: int = 5
    db_busy_timeout: float = 5.0
    default_pick_timer_seconds: int = 60
    pick_timer_min: int = 5
    pick_timer_max: int = 3600
    round_count_min: int = 1
    round_count_max: int = 50
    watchlist_limit: int = 200
    auto_pick_page_size: int = 100
    auto_pick_max_pages: int = 20
    pool_default_limit: int = 50
    pool_max_limit: int = 1000
    server_host: str = "127.0.0.1"
    server_port: int = 5000


def create_config(
    yaml_path: str = "draft_room.yaml",
    env_prefix: str = "DRAFT_ROOM",
    defaults: dict[str, object] | None = None,
    *,
    db_path: str | None = None,
) -> ConfigurationSet:
    """Create a layered configuration.

    Priority (highest to lowest): explicit overrides > env vars > YAML file > defaults dict.
    """
    if defaults is None:
        defaults = _DEFAULTS

    layers = [
        config_from_env(env_prefix, separator="__", lowercase_keys=True),
        config_from_yaml(yaml_path, read_from_file=True, ignore_missing_paths=True),
        config_from_dict(defaults),
    ]
    if db_path is not None:
        layers.insert(0, config_from_dict({"db": {"path": db_path}}))

    return ConfigurationSet(*layers)


def _read(cfg: ConfigurationSet, key: str, convert: Callable[[str], T]) -> T:
    try:
        raw = cfg[key]
    except KeyError as e:
        raise ConfigurationError(f"Missing configuration value: {key}") from e
    try:
        return convert(str(raw))
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {key}: {raw!r}") from e


def _positive(cfg: ConfigurationSet, key: str) -> int:
    value = _read(cfg, key, int)
    if value < 1:
        raise ConfigurationError(f"{key} must be a positive integer, got {value}")
    return value


def load_settings(cfg: ConfigurationSet | None = None) -> DraftRoomSettings:
    if cfg is None:
        cfg = create_config()

    settings = DraftRoomSettings(
        db_path=_read(cfg, "db.path", str),
        db_pool_size=_positive(cfg, "db.pool_size"),
        db_busy_timeout=_read(cfg, "db.busy_timeout", float),
        default_pick_timer_seconds=_positive(cfg, "draft.default_pick_timer_seconds"),
        pick_timer_min=_positive(cfg, "draft.pick_timer_min"),
        pick_timer_max=_positive(cfg, "draft.pick_timer_max"),
        round_count_min=_positive(cfg, "draft.round_count_min"),
        round_count_max=_positive(cfg, "draft.round_count_max"),
        watchlist_limit=_positive(cfg, "draft.watchlist_limit"),
        auto_pick_page_size=_positive(cfg, "draft.auto_pick_page_size"),
        auto_pick_max_pages=_positive(cfg, "draft.auto_pick_max_pages"),
        pool_default_limit=_positive(cfg, "pool.default_limit"),
        pool_max_limit=_positive(cfg, "pool.max_limit"),
        server_host=_read(cfg, "server.host", str),
        server_port=_positive(cfg, "server.port"),
    )
    if settings.pick_timer_min > settings.pick_timer_max:
        raise ConfigurationError("draft.pick_timer_min must not exceed draft.pick_timer_max")
    if settings.round_count_min > settings.round_count_max:
        raise ConfigurationError("draft.round_count_min must not exceed draft.round_count_max")
    if settings.pool_default_limit > settings.pool_max_limit:
        raise ConfigurationError("pool.default_limit must not exceed pool.max_limit")
    return settings
