"""
Viewer configuration.
Parser tolerances, camera defaults, playback speed, colors and key bindings,
loaded from a JSON file with defaults for everything left out.
"""
import json
import logging
import os
from dataclasses import dataclass, field, fields, asdict
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from core.lexer import ParseOptions
from utils.errors import ConfigError
from utils.projection import ProjectionMode

log = logging.getLogger(__name__)

Color = Tuple[int, int, int]

CONFIG_FILE_NAME = "nc_view.json"


class Action(Enum):
    QUIT = "quit"
    PAN_LEFT = "pan_left"
    PAN_RIGHT = "pan_right"
    PAN_UP = "pan_up"
    PAN_DOWN = "pan_down"
    ZOOM_IN = "zoom_in"
    ZOOM_OUT = "zoom_out"
    ROTATE_LEFT = "rotate_left"
    ROTATE_RIGHT = "rotate_right"
    ROTATE_UP = "rotate_up"
    ROTATE_DOWN = "rotate_down"
    FIT = "fit"
    RESET_VIEW = "reset_view"
    TOGGLE_PLAYBACK = "toggle_playback"
    TOGGLE_FOCUS = "toggle_focus"
    LINE_UP = "line_up"
    LINE_DOWN = "line_down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    TOGGLE_PROJECTION = "toggle_projection"
    TOGGLE_HELP = "toggle_help"
    TOGGLE_VISUAL = "toggle_visual"


DEFAULT_KEYS = {
    Action.QUIT: "q",
    Action.PAN_LEFT: "h",
    Action.PAN_RIGHT: "l",
    Action.PAN_UP: "k",
    Action.PAN_DOWN: "j",
    Action.ZOOM_IN: "plus",
    Action.ZOOM_OUT: "minus",
    Action.ROTATE_LEFT: "a",
    Action.ROTATE_RIGHT: "d",
    Action.ROTATE_UP: "w",
    Action.ROTATE_DOWN: "s",
    Action.FIT: "g",
    Action.RESET_VIEW: "r",
    Action.TOGGLE_PLAYBACK: "space",
    Action.TOGGLE_FOCUS: "tab",
    Action.LINE_UP: "up",
    Action.LINE_DOWN: "down",
    Action.PAGE_UP: "pageup",
    Action.PAGE_DOWN: "pagedown",
    Action.TOGGLE_PROJECTION: "p",
    Action.TOGGLE_HELP: "?",
    Action.TOGGLE_VISUAL: "v",
}

# Named keys as Qt key-sequence text
NAMED_KEYS = {
    "plus": "+",
    "minus": "-",
    "space": "Space",
    "esc": "Esc",
    "escape": "Esc",
    "enter": "Return",
    "return": "Return",
    "tab": "Tab",
    "backspace": "Backspace",
    "left": "Left",
    "right": "Right",
    "up": "Up",
    "down": "Down",
    "home": "Home",
    "end": "End",
    "pageup": "PgUp",
    "pagedown": "PgDown",
    "pgup": "PgUp",
    "pgdown": "PgDown",
}

MODIFIERS = {
    "ctrl": "Ctrl",
    "control": "Ctrl",
    "alt": "Alt",
    "shift": "Shift",
}

NAMED_COLORS = {
    "black": (0, 0, 0),
    "red": (205, 49, 49),
    "green": (13, 188, 121),
    "yellow": (229, 229, 16),
    "blue": (36, 114, 200),
    "magenta": (188, 63, 188),
    "cyan": (17, 168, 205),
    "gray": (153, 153, 153),
    "grey": (153, 153, 153),
    "darkgray": (102, 102, 102),
    "darkgrey": (102, 102, 102),
    "lightred": (241, 76, 76),
    "lightgreen": (35, 209, 139),
    "lightyellow": (245, 245, 67),
    "lightblue": (59, 142, 234),
    "lightmagenta": (214, 112, 214),
    "lightcyan": (41, 184, 219),
    "white": (229, 229, 229),
}


@dataclass
class ParserSettings:
    ignore_missing_words: List[str] = field(default_factory=lambda: ["E"])
    ignore_unknown_words: bool = True

    def to_options(self) -> ParseOptions:
        options = ParseOptions.with_ignore_missing(self.ignore_missing_words)
        return options.with_ignore_unknown_words(self.ignore_unknown_words)


@dataclass
class ProjectionSettings:
    mode: ProjectionMode = ProjectionMode.PERSPECTIVE
    yaw_deg: float = -45.0
    pitch_deg: float = 70.0


@dataclass
class AnimationSettings:
    speed_segments_per_sec: float = 800.0


@dataclass
class Theme:
    background: Color = (0x1e, 0x1e, 0x2e)
    foreground: Color = (0xcd, 0xd6, 0xf4)
    path_feed: Color = (0x89, 0xb4, 0xfa)
    path_rapid: Color = (0x6c, 0x70, 0x86)
    axis_x: Color = (0xf3, 0x8b, 0xa8)
    axis_y: Color = (0xa6, 0xe3, 0xa1)
    axis_z: Color = (0x89, 0xb4, 0xfa)
    grid: Color = (0x45, 0x47, 0x5a)
    status_fg: Color = (0xcd, 0xd6, 0xf4)
    status_bg: Color = (0x31, 0x32, 0x44)
    code_keyword: Color = (0xcb, 0xa6, 0xf7)
    code_number: Color = (0xfa, 0xb3, 0x87)
    code_comment: Color = (0x6c, 0x70, 0x86)
    code_label: Color = (0xf9, 0xe2, 0xaf)
    code_axis: Color = (0x94, 0xe2, 0xd5)


@dataclass
class UiSettings:
    show_line_numbers: bool = False


@dataclass
class ViewerConfig:
    """Complete viewer configuration."""
    parser: ParserSettings = field(default_factory=ParserSettings)
    projection: ProjectionSettings = field(default_factory=ProjectionSettings)
    animation: AnimationSettings = field(default_factory=AnimationSettings)
    theme: Theme = field(default_factory=Theme)
    ui: UiSettings = field(default_factory=UiSettings)
    keys: Dict[Action, str] = field(
        default_factory=lambda: {action: parse_key_spec(spec) for action, spec in DEFAULT_KEYS.items()}
    )


class ConfigManager:
    """Finds, loads and saves viewer configuration files."""

    @staticmethod
    def find_default_config() -> Optional[Path]:
        """Look in the working directory, then under ~/.config/nc_view."""
        candidate = Path.cwd() / CONFIG_FILE_NAME
        if candidate.exists():
            return candidate

        home = os.environ.get("HOME")
        if home:
            candidate = Path(home) / ".config" / "nc_view" / "config.json"
            if candidate.exists():
                return candidate
        return None

    @staticmethod
    def load_config(filepath: Optional[str] = None) -> ViewerConfig:
        """
        Load configuration from a JSON file.

        An explicit path must exist. Without one, the default locations are
        searched and built-in defaults are used when nothing is found.
        """
        path = Path(filepath) if filepath else ConfigManager.find_default_config()
        if path is None:
            log.debug("No config file found, using defaults")
            return ViewerConfig()
        if not path.exists():
            raise ConfigError(f"config file not found: {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as error:
            raise ConfigError(f"failed to read config {path}: {error}") from error

        log.info("Using config %s", path)
        return ConfigManager.from_dict(data)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> ViewerConfig:
        if not isinstance(data, dict):
            raise ConfigError("config root must be an object")
        _warn_unknown("config", data, ("parser", "projection", "animation", "theme", "ui", "keys"))

        return ViewerConfig(
            parser=_parse_parser(data.get("parser", {})),
            projection=_parse_projection(data.get("projection", {})),
            animation=_parse_animation(data.get("animation", {})),
            theme=_parse_theme(data.get("theme", {})),
            ui=_parse_ui(data.get("ui", {})),
            keys=_parse_keys(data.get("keys", {})),
        )

    @staticmethod
    def save_config(config: ViewerConfig, filepath: str):
        """Save configuration to JSON file."""
        data = {
            "parser": asdict(config.parser),
            "projection": {
                "mode": config.projection.mode.value,
                "yaw_deg": config.projection.yaw_deg,
                "pitch_deg": config.projection.pitch_deg,
            },
            "animation": asdict(config.animation),
            "theme": {name: format_color(color) for name, color in asdict(config.theme).items()},
            "ui": asdict(config.ui),
            "keys": {action.value: spec for action, spec in config.keys.items()},
        }

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)


def parse_color(raw: str) -> Color:
    """Parse a color name or #rrggbb hex string."""
    value = str(raw).strip().lower()
    if not value:
        raise ConfigError("empty color")
    if value in NAMED_COLORS:
        return NAMED_COLORS[value]
    if value.startswith('#') and len(value) == 7:
        try:
            return (int(value[1:3], 16), int(value[3:5], 16), int(value[5:7], 16))
        except ValueError:
            pass
    raise ConfigError(f"unknown color: {raw}")


def format_color(color: Color) -> str:
    return "#{:02x}{:02x}{:02x}".format(*color)


def parse_key_spec(raw: str) -> str:
    """
    Convert a key binding such as "k", "pageup" or "ctrl+s" to Qt
    key-sequence text.
    """
    value = str(raw).strip()
    if not value:
        raise ConfigError("empty key binding")
    if len(value) == 1:
        return value

    lower = value.lower()
    if lower in NAMED_KEYS:
        return NAMED_KEYS[lower]

    *modifier_parts, key_part = lower.split('+')
    modifiers = []
    for part in modifier_parts:
        part = part.strip()
        if not part:
            continue
        if part not in MODIFIERS:
            raise ConfigError(f"unknown modifier: {part}")
        modifiers.append(MODIFIERS[part])

    key_part = key_part.strip()
    if len(key_part) == 1:
        key = key_part.upper() if modifiers else key_part
    elif key_part in NAMED_KEYS:
        key = NAMED_KEYS[key_part]
    else:
        raise ConfigError(f"unknown key: {key_part}")
    return "+".join(modifiers + [key])


def _warn_unknown(section: str, data: Dict[str, Any], known):
    for key in data:
        if key not in known:
            log.warning("Ignoring unknown %s key: %s", section, key)


def _section(name: str, data: Any, settings_cls) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ConfigError(f"[{name}] must be an object")
    _warn_unknown(name, data, [f.name for f in fields(settings_cls)])
    return data


def _parse_parser(data: Any) -> ParserSettings:
    data = _section("parser", data, ParserSettings)
    settings = ParserSettings()
    if "ignore_missing_words" in data:
        letters = []
        items = data["ignore_missing_words"]
        if not isinstance(items, list):
            raise ConfigError("parser.ignore_missing_words must be a list")
        for item in items:
            if not isinstance(item, str):
                raise ConfigError(f"ignore_missing_words entry must be a string: {item!r}")
            trimmed = item.strip()
            if not trimmed:
                continue
            if len(trimmed) != 1:
                raise ConfigError(f"ignore_missing_words entry must be a single letter: {item}")
            letters.append(trimmed.upper())
        settings.ignore_missing_words = letters
    if "ignore_unknown_words" in data:
        settings.ignore_unknown_words = _bool("parser.ignore_unknown_words", data["ignore_unknown_words"])
    return settings


def _parse_projection(data: Any) -> ProjectionSettings:
    data = _section("projection", data, ProjectionSettings)
    settings = ProjectionSettings()
    if "mode" in data:
        try:
            settings.mode = ProjectionMode.parse(str(data["mode"]))
        except ValueError as error:
            raise ConfigError(str(error)) from error
    if "yaw_deg" in data:
        settings.yaw_deg = _number("projection.yaw_deg", data["yaw_deg"])
    if "pitch_deg" in data:
        settings.pitch_deg = _number("projection.pitch_deg", data["pitch_deg"])
    return settings


def _parse_animation(data: Any) -> AnimationSettings:
    data = _section("animation", data, AnimationSettings)
    settings = AnimationSettings()
    if "speed_segments_per_sec" in data:
        speed = _number("animation.speed_segments_per_sec", data["speed_segments_per_sec"])
        if speed <= 0.0:
            raise ConfigError("animation speed must be positive")
        settings.speed_segments_per_sec = speed
    return settings


def _parse_theme(data: Any) -> Theme:
    data = _section("theme", data, Theme)
    theme = Theme()
    for item in fields(Theme):
        if item.name in data:
            setattr(theme, item.name, parse_color(data[item.name]))
    return theme


def _parse_ui(data: Any) -> UiSettings:
    data = _section("ui", data, UiSettings)
    settings = UiSettings()
    if "show_line_numbers" in data:
        settings.show_line_numbers = _bool("ui.show_line_numbers", data["show_line_numbers"])
    return settings


def _parse_keys(data: Any) -> Dict[Action, str]:
    if not isinstance(data, dict):
        raise ConfigError("[keys] must be an object")
    specs = dict(DEFAULT_KEYS)
    by_name = {action.value: action for action in Action}
    for name, spec in data.items():
        if name not in by_name:
            log.warning("Ignoring unknown keys key: %s", name)
            continue
        specs[by_name[name]] = spec
    return {action: parse_key_spec(spec) for action, spec in specs.items()}


def _number(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number")
    return float(value)


def _bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{name} must be true or false")
    return value
