"""
utils/qr_config.py
────────────────────────────────────────────
Stilkonfiguration für QR Studio.

Definiert das Stil-Objekt (Größe, Farben, Formen, Verlauf, Logo,
Rahmen, Animation), die Presets und den Normalizer, der Teil-Updates
zusammenführt und Wertebereiche erzwingt, bevor die Konfiguration
an den Renderer geht.
────────────────────────────────────────────
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────
# 📐 Wertebereiche & Varianten
# ─────────────────────────────────────────────
SIZE_MIN, SIZE_MAX = 128, 1024
LOGO_SIZE_MIN, LOGO_SIZE_MAX = 0.1, 0.5
LOGO_MARGIN_MIN, LOGO_MARGIN_MAX = 0, 20
ANIMATION_MIN, ANIMATION_MAX = 500, 3000
DIRECTION_MIN, DIRECTION_MAX = 0, 360
MIN_GRADIENT_STOPS = 2

ERROR_CORRECTION_LEVELS = ("L", "M", "Q", "H")
DOTS_TYPES = ("square", "rounded", "dots", "classy", "classy-rounded", "extra-rounded")
CORNER_SQUARE_TYPES = ("square", "dot", "extra-rounded")
CORNER_DOT_TYPES = ("square", "dot")
GRADIENT_TYPES = ("none", "linear", "radial")
FRAME_STYLES = ("none", "square", "circle", "banner", "balloon")
ANIMATION_TYPES = ("fade", "scale", "rotate")

SIZE_PRESETS: Dict[str, int] = {
    "small": 128,
    "medium": 256,
    "large": 384,
    "xlarge": 512,
}

_HEX_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


# ─────────────────────────────────────────────
# 🎨 Stil-Objekte
# ─────────────────────────────────────────────
@dataclass(frozen=True)
class GradientStop:
    offset: float
    color: str


@dataclass(frozen=True)
class LogoOptions:
    image: str
    size: float = 0.3
    margin: int = 10
    remove_background: bool = False


@dataclass(frozen=True)
class FrameOptions:
    style: str = "square"
    color: str = "#000000"
    text: str = ""
    text_color: str = "#FFFFFF"


@dataclass(frozen=True)
class AnimationOptions:
    type: str = "fade"
    duration: int = 1000


@dataclass(frozen=True)
class StyleConfiguration:
    size: int = 256
    fg_color: str = "#000000"
    bg_color: str = "#FFFFFF"
    error_correction: str = "M"
    dots_type: str = "square"
    corners_square_type: str = "square"
    corners_dot_type: str = "square"
    gradient_type: str = "none"
    gradient_direction: int = 0
    gradient_stops: Tuple[GradientStop, ...] = field(default_factory=tuple)
    logo: Optional[LogoOptions] = None
    frame: Optional[FrameOptions] = None
    animation: Optional[AnimationOptions] = None

    @property
    def has_gradient(self) -> bool:
        return self.gradient_type != "none" and len(self.gradient_stops) >= MIN_GRADIENT_STOPS


DEFAULT_STYLE = StyleConfiguration()

# ─────────────────────────────────────────────
# 🪄 PRESETS
# ─────────────────────────────────────────────
COLOR_PRESETS: Dict[str, Dict[str, str]] = {
    "classic": {"fg": "#000000", "bg": "#FFFFFF"},
    "blue": {"fg": "#1E40AF", "bg": "#EFF6FF"},
    "green": {"fg": "#059669", "bg": "#ECFDF5"},
    "red": {"fg": "#DC2626", "bg": "#FEF2F2"},
    "violet": {"fg": "#7C3AED", "bg": "#F3E8FF"},
    "orange": {"fg": "#EA580C", "bg": "#FFF7ED"},
    "rose": {"fg": "#E11D48", "bg": "#FDF2F8"},
    "dark": {"fg": "#FFFFFF", "bg": "#111827"},
}

GRADIENT_PRESETS: Dict[str, Tuple[GradientStop, ...]] = {
    "sunset": (GradientStop(0, "#FF6B6B"), GradientStop(1, "#FFE66D")),
    "ocean": (GradientStop(0, "#667EEA"), GradientStop(1, "#764BA2")),
    "forest": (GradientStop(0, "#11998E"), GradientStop(1, "#38EF7D")),
    "purple": (GradientStop(0, "#667EEA"), GradientStop(1, "#764BA2")),
    "fire": (GradientStop(0, "#F093FB"), GradientStop(1, "#F5576C")),
}

# camelCase (Client/JSON) → Feldname
_STYLE_KEYS = {
    "size": "size",
    "fgColor": "fg_color",
    "bgColor": "bg_color",
    "errorCorrectionLevel": "error_correction",
    "dotsType": "dots_type",
    "cornersSquareType": "corners_square_type",
    "cornersDotType": "corners_dot_type",
    "gradientType": "gradient_type",
    "gradientDirection": "gradient_direction",
    "gradientColorStops": "gradient_stops",
    "logo": "logo",
    "frame": "frame",
    "animation": "animation",
}

_CHOICES = {
    "error_correction": ERROR_CORRECTION_LEVELS,
    "dots_type": DOTS_TYPES,
    "corners_square_type": CORNER_SQUARE_TYPES,
    "corners_dot_type": CORNER_DOT_TYPES,
    "gradient_type": GRADIENT_TYPES,
}


# ─────────────────────────────────────────────
# 🔧 Hilfsfunktionen
# ─────────────────────────────────────────────
def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _number(value: Any, fallback: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = math.nan
    if not math.isfinite(number):
        logger.warning(f"⚠️ Ungültiger Zahlenwert ignoriert: {value!r}")
        return fallback
    return number


def _color(value: Any, fallback: str) -> str:
    if isinstance(value, str) and _HEX_RE.match(value.strip()):
        return value.strip()
    logger.warning(f"⚠️ Ungültige Farbe ignoriert: {value!r}")
    return fallback


def _field_name(key: str) -> Optional[str]:
    if key in _STYLE_KEYS:
        return _STYLE_KEYS[key]
    if key in _STYLE_KEYS.values():
        return key
    return None


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _stops_from(value: Any, fallback: Tuple[GradientStop, ...]) -> Tuple[GradientStop, ...]:
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        logger.warning(f"⚠️ Farbstopps müssen eine Liste sein: {value!r}")
        return fallback
    stops = []
    for item in value:
        if isinstance(item, GradientStop):
            stops.append(item)
        elif isinstance(item, Mapping):
            stops.append(
                GradientStop(
                    offset=_number(item.get("offset"), 0.0),
                    color=_color(item.get("color"), "#000000"),
                )
            )
        else:
            logger.warning(f"⚠️ Ungültiger Farbstopp ignoriert: {item!r}")
            return fallback
    if 0 < len(stops) < MIN_GRADIENT_STOPS:
        logger.warning(f"⚠️ Verlauf braucht mindestens {MIN_GRADIENT_STOPS} Farbstopps, behalte die bisherigen")
        return fallback
    return tuple(stops)


def _logo_from(value: Any, current: Optional[LogoOptions]) -> Optional[LogoOptions]:
    if value is None:
        return None
    if isinstance(value, LogoOptions):
        return value
    if isinstance(value, str):
        value = {"image": value}
    if not isinstance(value, Mapping):
        logger.warning(f"⚠️ Ungültige Logo-Optionen ignoriert: {value!r}")
        return current
    base = current or LogoOptions(image="")
    image = _pick(value, "image")
    size = _pick(value, "size")
    margin = _pick(value, "margin")
    remove_bg = _pick(value, "removeBackground", "remove_background")
    logo = LogoOptions(
        image=str(image) if image is not None else base.image,
        size=_number(size, base.size) if size is not None else base.size,
        margin=int(_number(margin, base.margin)) if margin is not None else base.margin,
        remove_background=bool(remove_bg) if remove_bg is not None else base.remove_background,
    )
    return logo if logo.image else None


def _frame_from(value: Any, current: Optional[FrameOptions]) -> Optional[FrameOptions]:
    if value is None:
        return None
    if isinstance(value, FrameOptions):
        return value
    if not isinstance(value, Mapping):
        logger.warning(f"⚠️ Ungültige Rahmen-Optionen ignoriert: {value!r}")
        return current
    base = current or FrameOptions()
    style = _pick(value, "style")
    if style is not None and style not in FRAME_STYLES:
        logger.warning(f"⚠️ Unbekannter Rahmenstil ignoriert: {style!r}")
        style = None
    color = _pick(value, "color")
    text = _pick(value, "text")
    text_color = _pick(value, "textColor", "text_color")
    return FrameOptions(
        style=style or base.style,
        color=_color(color, base.color) if color is not None else base.color,
        text=str(text) if text is not None else base.text,
        text_color=_color(text_color, base.text_color) if text_color is not None else base.text_color,
    )


def _animation_from(value: Any, current: Optional[AnimationOptions]) -> Optional[AnimationOptions]:
    if value is None:
        return None
    if isinstance(value, AnimationOptions):
        return value
    if not isinstance(value, Mapping):
        logger.warning(f"⚠️ Ungültige Animations-Optionen ignoriert: {value!r}")
        return current
    base = current or AnimationOptions()
    anim_type = _pick(value, "type")
    if anim_type == "none":
        return None
    if anim_type is not None and anim_type not in ANIMATION_TYPES:
        logger.warning(f"⚠️ Unbekannte Animation ignoriert: {anim_type!r}")
        anim_type = None
    duration = _pick(value, "duration")
    return AnimationOptions(
        type=anim_type or base.type,
        duration=int(_number(duration, base.duration)) if duration is not None else base.duration,
    )


# ─────────────────────────────────────────────
# 🧠 Normalizer
# ─────────────────────────────────────────────
def normalize_style(style: StyleConfiguration) -> StyleConfiguration:
    """
    Erzwingt die dokumentierten Grenzen (Klemmen statt Fehler)
    und hält die Farbstopps nach Offset sortiert.
    """
    stops = tuple(
        sorted(
            (GradientStop(offset=_clamp(s.offset, 0.0, 1.0), color=s.color) for s in style.gradient_stops),
            key=lambda s: s.offset,
        )
    )
    if 0 < len(stops) < MIN_GRADIENT_STOPS:
        logger.warning(f"⚠️ Einzelner Farbstopp verworfen (mindestens {MIN_GRADIENT_STOPS} nötig)")
        stops = ()

    logo = style.logo
    if logo is not None:
        logo = replace(
            logo,
            size=_clamp(logo.size, LOGO_SIZE_MIN, LOGO_SIZE_MAX),
            margin=int(_clamp(logo.margin, LOGO_MARGIN_MIN, LOGO_MARGIN_MAX)),
        )

    frame = style.frame
    if frame is not None and frame.style == "none":
        frame = None

    animation = style.animation
    if animation is not None:
        animation = replace(animation, duration=int(_clamp(animation.duration, ANIMATION_MIN, ANIMATION_MAX)))

    return replace(
        style,
        size=int(_clamp(style.size, SIZE_MIN, SIZE_MAX)),
        gradient_direction=int(_clamp(style.gradient_direction, DIRECTION_MIN, DIRECTION_MAX)),
        gradient_stops=stops,
        logo=logo,
        frame=frame,
        animation=animation,
    )


def merge_style(current: StyleConfiguration, updates: Mapping[str, Any]) -> StyleConfiguration:
    """
    Teil-Update: nicht angegebene Felder behalten ihren Wert.
    Akzeptiert camelCase (Client) und snake_case.
    """
    changes: Dict[str, Any] = {}
    for key, value in updates.items():
        name = _field_name(key)
        if name is None:
            logger.debug(f"Unbekannter Stil-Schlüssel ignoriert: {key}")
            continue

        if name in _CHOICES:
            if value in _CHOICES[name]:
                changes[name] = value
            else:
                logger.warning(f"⚠️ Ungültiger Wert für {name} ignoriert: {value!r}")
        elif name in ("fg_color", "bg_color"):
            changes[name] = _color(value, getattr(current, name))
        elif name == "size" and isinstance(value, str) and value.lower() in SIZE_PRESETS:
            changes[name] = SIZE_PRESETS[value.lower()]
        elif name in ("size", "gradient_direction"):
            changes[name] = int(_number(value, getattr(current, name)))
        elif name == "gradient_stops":
            changes[name] = _stops_from(value, current.gradient_stops)
        elif name == "logo":
            changes[name] = _logo_from(value, current.logo)
        elif name == "frame":
            changes[name] = _frame_from(value, current.frame)
        elif name == "animation":
            changes[name] = _animation_from(value, current.animation)

    return normalize_style(replace(current, **changes))


# ─────────────────────────────────────────────
# 🌈 Farbverlauf-Operationen
# ─────────────────────────────────────────────
def add_gradient_stop(style: StyleConfiguration, offset: float = 0.5, color: Optional[str] = None) -> StyleConfiguration:
    stops = style.gradient_stops or (
        GradientStop(0.0, style.fg_color),
        GradientStop(1.0, style.fg_color),
    )
    new_stop = GradientStop(offset=offset, color=_color(color, style.fg_color) if color else style.fg_color)
    return normalize_style(replace(style, gradient_stops=stops + (new_stop,)))


def update_gradient_stop(
    style: StyleConfiguration,
    index: int,
    offset: Optional[float] = None,
    color: Optional[str] = None,
) -> StyleConfiguration:
    if not 0 <= index < len(style.gradient_stops):
        logger.warning(f"⚠️ Farbstopp {index} existiert nicht")
        return style
    stops = list(style.gradient_stops)
    stop = stops[index]
    stops[index] = GradientStop(
        offset=stop.offset if offset is None else _number(offset, stop.offset),
        color=stop.color if color is None else _color(color, stop.color),
    )
    return normalize_style(replace(style, gradient_stops=tuple(stops)))


def remove_gradient_stop(style: StyleConfiguration, index: int) -> StyleConfiguration:
    """Entfernt einen Farbstopp – aber nie unter 2 (dann unverändert)."""
    stops = style.gradient_stops
    if len(stops) <= MIN_GRADIENT_STOPS or not 0 <= index < len(stops):
        logger.info(f"ℹ️ Entfernen von Farbstopp {index} abgelehnt ({len(stops)} Stopps)")
        return style
    return replace(style, gradient_stops=stops[:index] + stops[index + 1:])


def apply_gradient_preset(style: StyleConfiguration, name: str) -> StyleConfiguration:
    preset = GRADIENT_PRESETS.get(name.lower())
    if preset is None:
        logger.warning(f"⚠️ Unbekanntes Verlaufs-Preset: {name}")
        return style
    return normalize_style(
        replace(style, gradient_type="linear", gradient_direction=45, gradient_stops=preset)
    )


def apply_color_preset(style: StyleConfiguration, name: str) -> StyleConfiguration:
    preset = COLOR_PRESETS.get(name.lower())
    if preset is None:
        logger.warning(f"⚠️ Unbekanntes Farb-Preset: {name}")
        return style
    return replace(style, fg_color=preset["fg"], bg_color=preset["bg"])


# ─────────────────────────────────────────────
# 🔁 Dict-Form
# ─────────────────────────────────────────────
def style_to_dict(style: StyleConfiguration) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "size": style.size,
        "fgColor": style.fg_color,
        "bgColor": style.bg_color,
        "errorCorrectionLevel": style.error_correction,
        "dotsType": style.dots_type,
        "cornersSquareType": style.corners_square_type,
        "cornersDotType": style.corners_dot_type,
        "gradientType": style.gradient_type,
        "gradientDirection": style.gradient_direction,
        "gradientColorStops": [{"offset": s.offset, "color": s.color} for s in style.gradient_stops],
    }
    if style.logo:
        data["logo"] = {
            "image": style.logo.image,
            "size": style.logo.size,
            "margin": style.logo.margin,
            "removeBackground": style.logo.remove_background,
        }
    if style.frame:
        data["frame"] = {
            "style": style.frame.style,
            "color": style.frame.color,
            "text": style.frame.text,
            "textColor": style.frame.text_color,
        }
    if style.animation:
        data["animation"] = {"type": style.animation.type, "duration": style.animation.duration}
    return data


def style_from_dict(data: Optional[Mapping[str, Any]]) -> StyleConfiguration:
    return merge_style(DEFAULT_STYLE, data or {})
