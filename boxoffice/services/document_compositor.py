"""Printable A6 documents for tickets and invitation cards.

One credential per page.  The pipeline has three stages:

  resolve_branding  fetch organizer/sponsor logos (best-effort, concurrent)
  render_html       pure and deterministic: same input, same markup
  html_to_pdf       WeasyPrint

Logos degrade to text; anything else that goes wrong (QR encoding, PDF
conversion) fails the whole document with DocumentRenderError.  A partial
PDF is never returned.
"""

from __future__ import annotations

import asyncio
import html
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass

from boxoffice.core.config import SETTINGS
from boxoffice.core.metrics import DOCUMENT_RENDER_DURATION
from boxoffice.models.credential import Credential
from boxoffice.models.event import Event
from boxoffice.services import qr_encoder
from boxoffice.services.asset_fetcher import AssetFetcher

logger = logging.getLogger(__name__)

SPONSORS_PER_ROW = 3


class DocumentRenderError(Exception):
    """The document could not be produced; nothing was returned."""


@dataclass(frozen=True, slots=True)
class ResolvedSponsor:
    name: str
    logo: str | None  # data URI, None when the fetch failed


@dataclass(frozen=True, slots=True)
class Branding:
    organizer_name: str
    organizer_logo: str | None
    sponsors: tuple[ResolvedSponsor, ...] = ()


async def resolve_branding(event: Event, fetcher: AssetFetcher) -> Branding:
    """Download every logo concurrently; each failure only blanks its own slot."""
    organizer_name = (event.organizer_name or "").strip() or SETTINGS.default_organizer_name

    async with fetcher.client() as client:
        organizer_logo, *sponsor_logos = await asyncio.gather(
            fetcher.fetch_data_uri(event.organizer_logo_url, client),
            *(fetcher.fetch_data_uri(s.url, client) for s in event.sponsor_logos),
        )

    sponsors = tuple(
        ResolvedSponsor(name=s.name, logo=logo)
        for s, logo in zip(event.sponsor_logos, sponsor_logos)
    )
    return Branding(
        organizer_name=organizer_name,
        organizer_logo=organizer_logo,
        sponsors=sponsors,
    )


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------

PAGE_CSS = """\
@page { size: A6 portrait; margin: 12pt; }
body { font-family: Helvetica, Arial, sans-serif; color: #1a1a1a; margin: 0; }
.credential-page { page-break-after: always; text-align: center; }
.credential-page:last-child { page-break-after: auto; }
.header { display: flex; align-items: center; justify-content: center;
  gap: 6pt; border-bottom: 1.5pt solid #7a1e2c; padding-bottom: 4pt; }
.header img { height: 26pt; }
.organizer { font-size: 11pt; font-weight: bold; letter-spacing: 1pt; }
.event-title { font-size: 12pt; font-weight: bold; margin: 6pt 0 2pt; }
.event-meta { font-size: 7.5pt; color: #444; margin: 0; }
.card-type { display: inline-block; margin-top: 4pt; padding: 1pt 6pt;
  font-size: 7pt; font-weight: bold; border: 1pt solid #7a1e2c; color: #7a1e2c; }
h2 { font-size: 7.5pt; letter-spacing: 0.8pt; margin: 7pt 0 3pt; color: #7a1e2c; }
table.info { width: 100%; border-collapse: collapse; font-size: 7pt; }
table.info th { text-align: left; font-weight: normal; color: #555; width: 42%;
  padding: 1.5pt 2pt; }
table.info td { text-align: left; font-weight: bold; padding: 1.5pt 2pt; }
.qr img { width: 90pt; height: 90pt; }
.short-id { font-family: Courier, monospace; font-size: 7pt; }
.sponsors { width: 100%; }
.sponsors td { width: 33%; text-align: center; vertical-align: middle; }
.sponsors img { max-height: 18pt; max-width: 60pt; }
.sponsor-name { font-size: 5.5pt; color: #555; }
.footer { margin-top: 6pt; border-top: 1pt solid #ddd; padding-top: 3pt; }
.footer strong { font-size: 7pt; }
.footer p { font-size: 6pt; color: #555; margin: 1pt 0 0; }
"""

_FOOTERS = {
    "ticket": (
        "THANK YOU FOR YOUR PURCHASE!",
        "Please present this ticket at the entrance",
    ),
    "invitation_card": (
        "WE LOOK FORWARD TO SEEING YOU!",
        "Please present this invitation card at the entrance",
    ),
}


def format_event_date(event: Event) -> str:
    if event.date is None:
        return ""
    d = event.date
    return f"{d:%A}, {d:%B} {d.day}, {d.year}"


def format_price(price: int) -> str:
    return f"UGX {price:,}"


def _e(value: object) -> str:
    return html.escape(str(value), quote=True)


def _header(branding: Branding) -> str:
    logo = (
        f'<img src="{_e(branding.organizer_logo)}" alt="">'
        if branding.organizer_logo
        else ""
    )
    return (
        f'<div class="header">{logo}'
        f'<span class="organizer">{_e(branding.organizer_name)}</span></div>'
    )


def _info_rows(credential: Credential) -> list[tuple[str, str]]:
    label = "Ticket ID" if credential.kind == "ticket" else "Card ID"
    rows = [(label, credential.short_id)]
    if credential.buyer_name:
        rows.append(("Full Name", credential.buyer_name))
    if credential.buyer_phone:
        rows.append(("Phone", credential.buyer_phone))
    rows.append(
        ("Purchase Channel", credential.purchase_channel.replace("_", " ").title())
    )
    if credential.confirmation_code:
        rows.append(("Confirmation Code", credential.confirmation_code))
    if credential.card_type:
        rows.append(("Card Type", credential.card_type))
    if credential.batch_code:
        rows.append(("Batch", credential.batch_code))
    if credential.price > 0:
        rows.append(("Price", format_price(credential.price)))
    return rows


def _sponsor_block(branding: Branding) -> str:
    if not branding.sponsors:
        return ""
    rows = []
    for i in range(0, len(branding.sponsors), SPONSORS_PER_ROW):
        cells = []
        for sponsor in branding.sponsors[i : i + SPONSORS_PER_ROW]:
            logo = (
                f'<img src="{_e(sponsor.logo)}" alt=""><br>' if sponsor.logo else ""
            )
            cells.append(
                f'<td>{logo}<span class="sponsor-name">{_e(sponsor.name)}</span></td>'
            )
        rows.append(f"<tr>{''.join(cells)}</tr>")
    return (
        "<h2>PROUDLY SPONSORED BY</h2>"
        f'<table class="sponsors">{"".join(rows)}</table>'
    )


def render_page(credential: Credential, event: Event, branding: Branding) -> str:
    """Markup for one credential.  Raises whatever the QR encoder raises."""
    kind_word = "TICKET" if credential.kind == "ticket" else "INVITATION CARD"
    qr_src = qr_encoder.encode_data_uri(qr_encoder.qr_payload(credential))

    meta = " · ".join(p for p in (format_event_date(event), event.location) if p)
    card_type = (
        f'<div class="card-type">{_e(credential.card_type.upper())}</div>'
        if credential.kind == "invitation_card" and credential.card_type
        else ""
    )
    info = "".join(
        f"<tr><th>{_e(k)}</th><td>{_e(v)}</td></tr>" for k, v in _info_rows(credential)
    )
    thanks, present = _FOOTERS[credential.kind]

    return (
        f'<section class="credential-page" data-credential-id="{_e(credential.id)}">'
        f"{_header(branding)}"
        f'<div class="event-title">{_e(event.title.upper())}</div>'
        f'<p class="event-meta">{_e(meta)}</p>'
        f"{card_type}"
        f"<h2>{kind_word} INFORMATION</h2>"
        f'<table class="info">{info}</table>'
        f"<h2>SCAN TO VERIFY {kind_word}</h2>"
        f'<div class="qr"><img src="{qr_src}" alt="QR code"></div>'
        f'<div class="short-id">{_e(credential.short_id)}</div>'
        f"{_sponsor_block(branding)}"
        f'<div class="footer"><strong>{thanks}</strong><p>{present}</p></div>'
        "</section>"
    )


def render_html(
    credentials: Sequence[Credential], event: Event, branding: Branding
) -> str:
    pages = "".join(render_page(c, event, branding) for c in credentials)
    return (
        '<!DOCTYPE html><html lang="en"><head><meta charset="utf-8">'
        f"<title>{_e(event.title)}</title></head>"
        f"<body>{pages}</body></html>"
    )


def html_to_pdf(html_content: str) -> bytes:
    from weasyprint import CSS, HTML

    return HTML(string=html_content).write_pdf(stylesheets=[CSS(string=PAGE_CSS)])


def render_pdf(
    credentials: Sequence[Credential], event: Event, branding: Branding
) -> bytes:
    return html_to_pdf(render_html(credentials, event, branding))


# ---------------------------------------------------------------------------
# Compositor
# ---------------------------------------------------------------------------


class DocumentCompositor:
    def __init__(self, fetcher: AssetFetcher | None = None) -> None:
        self.fetcher = fetcher if fetcher is not None else AssetFetcher()

    async def compose(self, credentials: Sequence[Credential], event: Event) -> bytes:
        """Render ``credentials`` (one page each) into a single PDF."""
        if not credentials:
            raise DocumentRenderError("No credentials to render")

        start = time.monotonic()
        branding = await resolve_branding(event, self.fetcher)

        try:
            # QR encoding and layout are CPU-bound; keep both off the event loop
            pdf = await asyncio.to_thread(render_pdf, credentials, event, branding)
        except Exception as e:
            logger.exception(
                "Document rendering failed  event=%s pages=%d", event.id, len(credentials)
            )
            raise DocumentRenderError(f"{type(e).__name__}: {e}") from e

        duration = time.monotonic() - start
        DOCUMENT_RENDER_DURATION.labels(
            size="single" if len(credentials) == 1 else "batch"
        ).observe(duration)
        logger.info(
            "Document rendered  event=%s pages=%d bytes=%d (%.2fs)",
            event.id,
            len(credentials),
            len(pdf),
            duration,
        )
        return pdf
