from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import tomllib


DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5000
DEFAULT_TIMEOUT = 10.0
DEFAULT_DIM_OPACITY = 0.1
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
STATE_DIR_NAME = ".fractal"
STATE_DIR_ENV = "FRACTAL_STATE_DIR"


def find_state_dir(start: Path) -> Path | None:
    """Nearest ``.fractal`` directory at or above ``start``."""
    for base in (start, *start.parents):
        candidate = base / STATE_DIR_NAME
        if candidate.is_dir():
            return candidate
    return None


def resolve_state_dir(cwd: Path | None = None, *, create: bool = True) -> Path:
    """Where the task database and ``config.toml`` live.

    ``FRACTAL_STATE_DIR`` wins; otherwise the nearest existing ``.fractal``
    above ``cwd`` is shared, so commands run from a subdirectory see the same
    tasks. A fresh tree gets ``cwd/.fractal``.
    """
    override = os.environ.get(STATE_DIR_ENV, "").strip()
    if override:
        state_dir = Path(override).expanduser().resolve()
    else:
        start = (cwd or Path.cwd()).resolve()
        state_dir = find_state_dir(start) or start / STATE_DIR_NAME
    if create:
        state_dir.mkdir(parents=True, exist_ok=True)
    return state_dir


class ConfigValidationError(ValueError):
    pass


@dataclass(frozen=True)
class FractalConfig:
    state_dir: Path
    path: Path
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    server_url: str = f"http://{DEFAULT_HOST}:{DEFAULT_PORT}/api"
    timeout: float = DEFAULT_TIMEOUT
    dim_opacity: float = DEFAULT_DIM_OPACITY
    log_level: str = "WARNING"


def _as_str(value: object, *, field: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigValidationError(f"{field} must be a non-empty string")
    return value.strip()


def _as_port(value: object, *, field: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigValidationError(f"{field} must be an integer")
    if value < 1 or value > 65535:
        raise ConfigValidationError(f"{field} must be between 1 and 65535")
    return value


def _as_float(value: object, *, field: str, low: float, high: float | None = None) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigValidationError(f"{field} must be a number")
    number = float(value)
    if number < low or (high is not None and number > high):
        bound = f"between {low} and {high}" if high is not None else f">= {low}"
        raise ConfigValidationError(f"{field} must be {bound}")
    return number


def _as_log_level(value: object, *, field: str) -> str | None:
    text = _as_str(value, field=field)
    if text is None:
        return None
    level = text.upper()
    if level not in LOG_LEVELS:
        expected = ", ".join(LOG_LEVELS)
        raise ConfigValidationError(f"{field} must be one of: {expected}")
    return level


def _table(data: dict[str, object], name: str) -> dict[str, object]:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ConfigValidationError(f"[{name}] must be a table")
    return value


def load_config(cwd: Path | None = None) -> FractalConfig:
    """Read ``<state_dir>/config.toml`` and apply FRACTAL_* overrides."""
    state_dir = resolve_state_dir(cwd, create=False)
    path = state_dir / "config.toml"

    data: dict[str, object] = {}
    if path.exists():
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as exc:
            raise ConfigValidationError(f"invalid TOML in {path}: {exc}") from exc

    server = _table(data, "server")
    view = _table(data, "view")
    logging_table = _table(data, "logging")

    host = _as_str(server.get("host"), field="[server].host") or DEFAULT_HOST
    port = _as_port(server.get("port"), field="[server].port") or DEFAULT_PORT
    server_url = _as_str(server.get("url"), field="[server].url") or (
        f"http://{host}:{port}/api"
    )
    timeout = _as_float(server.get("timeout"), field="[server].timeout", low=0.0)
    dim_opacity = _as_float(
        view.get("dim_opacity"), field="[view].dim_opacity", low=0.0, high=1.0
    )
    log_level = _as_log_level(logging_table.get("level"), field="[logging].level")

    env_url = os.environ.get("FRACTAL_SERVER_URL", "").strip()
    if env_url:
        server_url = env_url
    env_level = os.environ.get("FRACTAL_LOG_LEVEL", "").strip()
    if env_level:
        log_level = _as_log_level(env_level, field="FRACTAL_LOG_LEVEL")

    return FractalConfig(
        state_dir=state_dir,
        path=path,
        host=host,
        port=port,
        server_url=server_url.rstrip("/"),
        timeout=DEFAULT_TIMEOUT if timeout is None else timeout,
        dim_opacity=DEFAULT_DIM_OPACITY if dim_opacity is None else dim_opacity,
        log_level=log_level or "WARNING",
    )
