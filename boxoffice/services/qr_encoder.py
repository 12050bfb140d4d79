"""QR payloads and images for credentials.

The payload is compact JSON built from the persisted record, so it always
carries the batch code the allocator actually assigned:

  {"batch_code":"SPRING24","event_id":"evt-1","ticket_id":"9f1c..."}

Invitation cards use ``card_id`` and add ``card_type``.  The scan
normalizer reads either key back out.
"""

from __future__ import annotations

import base64
import io
import json

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from boxoffice.models.credential import Credential, kind_traits

# Version ~5-6 for a batch payload at box_size 6 comes out near 250-300 px,
# comfortably scannable when printed at A6.
_BOX_SIZE = 6
_BORDER = 2


def qr_payload(credential: Credential) -> str:
    traits = kind_traits(credential.kind)
    data: dict[str, str | None] = {
        traits.id_key: credential.id,
        "batch_code": credential.batch_code,
        "event_id": credential.event_id,
    }
    if credential.kind == "invitation_card":
        data["card_type"] = credential.card_type
    return json.dumps(data, separators=(",", ":"), sort_keys=True)


def encode(payload: str) -> bytes:
    """Render ``payload`` as a PNG QR code."""
    qr = qrcode.QRCode(
        error_correction=ERROR_CORRECT_M,
        box_size=_BOX_SIZE,
        border=_BORDER,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def encode_data_uri(payload: str) -> str:
    b64 = base64.b64encode(encode(payload)).decode("ascii")
    return f"data:image/png;base64,{b64}"
