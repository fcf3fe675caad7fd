"""Render raw pairing payloads into scannable QR images."""

from __future__ import annotations

import base64
import io
import logging

import qrcode

logger = logging.getLogger(__name__)


def render_pairing_artifact(raw: str) -> str:
    """Return ``raw`` encoded as a QR code PNG data URL."""
    if not raw:
        raise ValueError("Pairing payload must not be empty")

    image = qrcode.make(raw)
    buffer = io.BytesIO()
    image.save(buffer)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    logger.debug("Rendered pairing payload into %d byte PNG", len(buffer.getvalue()))
    return f"data:image/png;base64,{encoded}"
