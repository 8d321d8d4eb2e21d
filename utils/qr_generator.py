# =============================================================================
# 🧠 QR-Code Renderer – QR Studio
# -----------------------------------------------------------------------------
# Kanonischer String + StyleConfiguration → Bilddaten (png, svg, jpeg, webp).
# Matrix & Fehlerkorrektur kommen aus `qrcode`, Compositing aus Pillow.
# =============================================================================

from __future__ import annotations

import base64
import binascii
import logging
import os
from io import BytesIO
from typing import Dict, Optional, Tuple

import qrcode
import qrcode.image.styledpil
import qrcode.image.styles.colormasks as mask
import qrcode.image.styles.moduledrawers as mod
import qrcode.image.svg
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q
from qrcode.exceptions import DataOverflowError
from qrcode.image.styles.moduledrawers.svg import SvgPathCircleDrawer, SvgPathSquareDrawer
from PIL import Image, ImageColor, ImageDraw, ImageFont

from utils.qr_config import LogoOptions, FrameOptions, StyleConfiguration

# ---------------------------------------------------------------------------
# ⚙️ Logging konfigurieren
# ---------------------------------------------------------------------------
logger = logging.getLogger(__name__)

EXPORT_FORMATS: Dict[str, str] = {
    "png": "image/png",
    "svg": "image/svg+xml",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
}

_ERROR_LEVELS = {
    "L": ERROR_CORRECT_L,
    "M": ERROR_CORRECT_M,
    "Q": ERROR_CORRECT_Q,
    "H": ERROR_CORRECT_H,
}

QR_BORDER = 4
QR_BOX_SIZE = 10


class QRRenderError(RuntimeError):
    """Rendering fehlgeschlagen – Payload/Stil bleiben unverändert."""


# ---------------------------------------------------------------------------
# 🧩 Formen & Farben
# ---------------------------------------------------------------------------
def _module_drawer(dots_type: str):
    return {
        "square": mod.SquareModuleDrawer(),
        "rounded": mod.RoundedModuleDrawer(radius_ratio=0.5),
        "dots": mod.CircleModuleDrawer(),
        "classy": mod.GappedSquareModuleDrawer(size_ratio=0.85),
        "classy-rounded": mod.RoundedModuleDrawer(radius_ratio=0.75),
        "extra-rounded": mod.RoundedModuleDrawer(radius_ratio=1),
    }.get(dots_type, mod.SquareModuleDrawer())


def _eye_drawer(corners_square_type: str):
    return {
        "square": mod.SquareModuleDrawer(),
        "dot": mod.CircleModuleDrawer(),
        "extra-rounded": mod.RoundedModuleDrawer(radius_ratio=1),
    }.get(corners_square_type, mod.SquareModuleDrawer())


def _rgb(color: str) -> Tuple[int, int, int]:
    return ImageColor.getrgb(color)[:3]


def _color_mask(style: StyleConfiguration):
    back = _rgb(style.bg_color)
    if not style.has_gradient:
        return mask.SolidFillColorMask(back_color=back, front_color=_rgb(style.fg_color))

    # Die qrcode-Masken kennen nur zwei Farben: erster und letzter Stopp
    start = _rgb(style.gradient_stops[0].color)
    end = _rgb(style.gradient_stops[-1].color)

    if style.gradient_type == "radial":
        return mask.RadialGradiantColorMask(back_color=back, center_color=start, edge_color=end)

    direction = style.gradient_direction % 360
    if 45 <= direction < 135:
        return mask.VerticalGradiantColorMask(back_color=back, top_color=start, bottom_color=end)
    if 135 <= direction < 225:
        return mask.HorizontalGradiantColorMask(back_color=back, left_color=end, right_color=start)
    if 225 <= direction < 315:
        return mask.VerticalGradiantColorMask(back_color=back, top_color=end, bottom_color=start)
    return mask.HorizontalGradiantColorMask(back_color=back, left_color=start, right_color=end)


# ---------------------------------------------------------------------------
# 🖼️ Logo & Rahmen
# ---------------------------------------------------------------------------
def _open_logo(source: str) -> Optional[Image.Image]:
    """Logo aus Data-URL oder Dateipfad laden."""
    if source.startswith("data:"):
        _, _, encoded = source.partition(",")
        return Image.open(BytesIO(base64.b64decode(encoded))).convert("RGBA")
    if os.path.exists(source):
        return Image.open(source).convert("RGBA")
    logger.warning(f"⚠️ Logo nicht gefunden: {source[:60]}")
    return None


def _strip_background(logo: Image.Image, threshold: int = 240) -> Image.Image:
    pixels = [
        (r, g, b, 0) if r > threshold and g > threshold and b > threshold else (r, g, b, a)
        for r, g, b, a in logo.getdata()
    ]
    logo.putdata(pixels)
    return logo


def _embed_logo(img: Image.Image, options: LogoOptions, bg: str) -> Image.Image:
    try:
        logo = _open_logo(options.image)
    except (OSError, ValueError, binascii.Error) as e:
        logger.warning(f"⚠️ Logo konnte nicht eingebettet werden: {e}")
        return img
    if logo is None:
        return img

    if options.remove_background:
        logo = _strip_background(logo)

    logo_size = max(1, int(img.width * options.size))
    logo = logo.resize((logo_size, logo_size), Image.Resampling.LANCZOS)

    box = logo_size + 2 * options.margin
    plate = Image.new("RGBA", (box, box), bg)
    plate.alpha_composite(logo, dest=(options.margin, options.margin))

    pos = ((img.width - box) // 2, (img.height - box) // 2)
    img.alpha_composite(plate, dest=pos)
    return img


def _load_font(size: int):
    try:
        return ImageFont.truetype("arial.ttf", size)
    except OSError:
        return ImageFont.load_default()


def _apply_frame(img: Image.Image, frame: FrameOptions, bg: str) -> Image.Image:
    pad = max(4, img.width // 32)
    has_band = bool(frame.text) or frame.style in ("banner", "balloon")
    band = img.width // 6 if has_band else 0

    width = img.width + 2 * pad
    height = img.height + 2 * pad + band
    canvas = Image.new("RGBA", (width, height), bg)
    draw = ImageDraw.Draw(canvas)

    if frame.style == "square":
        draw.rectangle((0, 0, width - 1, height - 1), fill=frame.color)
    elif frame.style == "circle":
        draw.rounded_rectangle((0, 0, width - 1, height - 1), radius=pad * 4, fill=frame.color)

    canvas.paste(img, (pad, pad))

    if band:
        top = img.height + 2 * pad
        if frame.style in ("banner", "balloon"):
            draw.rectangle((0, top, width - 1, height - 1), fill=frame.color)
        if frame.style == "balloon":
            mid = width // 2
            draw.polygon([(mid - pad, top), (mid + pad, top), (mid, top - pad)], fill=frame.color)
        if frame.text:
            font = _load_font(max(12, band // 2))
            text_w = draw.textlength(frame.text, font=font)
            draw.text(
                ((width - text_w) // 2, top + band // 4),
                frame.text,
                fill=frame.text_color,
                font=font,
            )
    return canvas


# ---------------------------------------------------------------------------
# 🧾 SVG
# ---------------------------------------------------------------------------
def _render_svg(qr: qrcode.QRCode, style: StyleConfiguration) -> bytes:
    fill = style.gradient_stops[0].color if style.has_gradient else style.fg_color
    factory = type(
        "StyledSvgPathImage",
        (qrcode.image.svg.SvgPathFillImage,),
        {
            "QR_PATH_STYLE": {
                "fill": fill,
                "fill-opacity": "1",
                "fill-rule": "nonzero",
                "stroke": "none",
            },
            "background": style.bg_color,
        },
    )
    drawer = SvgPathCircleDrawer() if style.dots_type in ("dots", "extra-rounded") else SvgPathSquareDrawer()
    if style.logo or style.frame:
        logger.debug("Logo/Rahmen werden im SVG-Export nicht eingebettet")
    img = qr.make_image(image_factory=factory, module_drawer=drawer)
    return img.to_string(encoding="unicode").encode("utf-8")


# ---------------------------------------------------------------------------
# 🚀 Hauptfunktion: render_qr
# ---------------------------------------------------------------------------
def render_qr(content: str, style: StyleConfiguration, fmt: str = "png") -> bytes:
    """
    Rendert den kanonischen String mit der Stilkonfiguration.
    Gibt die Bilddaten im gewünschten Format zurück.
    """
    fmt = fmt.lower()
    if fmt not in EXPORT_FORMATS:
        raise QRRenderError(f"Unsupported export format: {fmt}")
    if not content or not content.strip():
        raise QRRenderError("Nothing to render: content is empty")

    # === 1️⃣ QR-Code Basis ===
    qr = qrcode.QRCode(
        version=None,
        error_correction=_ERROR_LEVELS.get(style.error_correction, ERROR_CORRECT_M),
        box_size=QR_BOX_SIZE,
        border=QR_BORDER,
    )
    try:
        qr.add_data(content)
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as e:
        # qrcode 8 meldet Überlänge als ValueError ("Invalid version")
        raise QRRenderError("Content too long for a QR code") from e

    if fmt == "svg":
        return _render_svg(qr, style)

    try:
        # === 2️⃣ Module, Ecken, Farben ===
        img = qr.make_image(
            image_factory=qrcode.image.styledpil.StyledPilImage,
            module_drawer=_module_drawer(style.dots_type),
            eye_drawer=_eye_drawer(style.corners_square_type),
            color_mask=_color_mask(style),
        ).convert("RGBA")

        # === 3️⃣ Logo einfügen ===
        if style.logo:
            img = _embed_logo(img, style.logo, style.bg_color)

        # === 4️⃣ Skalierung ===
        img = img.resize((style.size, style.size), Image.Resampling.LANCZOS)

        # === 5️⃣ Rahmen / Text ===
        if style.frame:
            img = _apply_frame(img, style.frame, style.bg_color)

        # === 6️⃣ Export ===
        buffer = BytesIO()
        if fmt == "jpeg":
            img.convert("RGB").save(buffer, format="JPEG", quality=95)
        elif fmt == "webp":
            img.save(buffer, format="WEBP")
        else:
            img.save(buffer, format="PNG")
    except (OSError, ValueError) as e:
        raise QRRenderError(f"Rendering failed: {e}") from e

    data = buffer.getvalue()
    logger.info(f"✅ QR-Code gerendert ({fmt}, {style.size}px, {len(data)} Bytes)")
    return data


def to_data_url(data: bytes, fmt: str = "png") -> str:
    mime = EXPORT_FORMATS.get(fmt.lower(), "application/octet-stream")
    return f"data:{mime};base64,{base64.b64encode(data).decode('utf-8')}"


def render_data_url(content: str, style: StyleConfiguration, fmt: str = "png") -> str:
    """Wie render_qr, aber als Data-URL (für Verlaufseinträge)."""
    return to_data_url(render_qr(content, style, fmt), fmt)
