"""
Coupon redirect endpoint — /api/promotion/coupon/{coupon}

Flow:
  1. Resolve coupon (cache → database)
  2. Not found / campaign outside its window → 302 to /pricing, no click
  3. Read country from the CDN header (default UNKNOWN)
  4. Dispatch click insert (fire-and-forget)
  5. Render redirect page → campaign URL with ?coupon=&country=

Database failures surface as a JSON error (see app/middleware/errors.py).
"""

from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.config import get_settings
from app.core.links import ResolvedLink
from app.core.resolver import CouponResolver, get_resolver
from app.core.tracking import TrackingSink, click_from_link, get_tracking_sink

import structlog

logger = structlog.get_logger()
router = APIRouter(prefix="/api/promotion", tags=["promotion"])


def _get_country(request: Request) -> str:
    settings = get_settings()
    # Starlette headers are case-insensitive
    country = (request.headers.get(settings.country_header) or "").strip().upper()
    return country or settings.unknown_country


def _build_destination(url: str, coupon: str, country: str) -> str:
    """Append coupon + country to the campaign URL, keeping its own params."""
    parsed = urlparse(url)
    params = parse_qs(parsed.query, keep_blank_values=True)
    params["coupon"] = [coupon]
    params["country"] = [country]
    return urlunparse(parsed._replace(query=urlencode(params, doseq=True)))


@router.get("/coupon/{coupon}")
async def redirect_coupon(
    request: Request,
    coupon: str,
    resolver: CouponResolver = Depends(get_resolver),
    tracking: TrackingSink = Depends(get_tracking_sink),
):
    settings = get_settings()

    link = await resolver.resolve(coupon)
    if link is None:
        logger.info("coupon_not_found", coupon=coupon)
        return RedirectResponse(url=settings.fallback_url, status_code=302)

    country = _get_country(request)
    tracking.record_click(click_from_link(link, country))

    logger.info("coupon_redirect",
                coupon=coupon,
                link_id=str(link.link_id),
                campaign_id=str(link.campaign_id),
                country=country)

    return HTMLResponse(_render_page(link, country))


def _render_page(link: ResolvedLink, country: str) -> str:
    destination = _build_destination(link.url, link.coupon, country)
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width,initial-scale=1">
<meta name="robots" content="noindex,nofollow">
<meta http-equiv="refresh" content="0;url={_html_escape(destination)}">
<title>{_html_escape(link.title)}</title>
</head>
<body data-coupon="{_html_escape(link.coupon)}" data-country="{_html_escape(country)}">
<p>Redirecting to {_html_escape(link.title)}…</p>
<p>Coupon <strong>{_html_escape(link.coupon)}</strong> ({_html_escape(country)})</p>
<noscript>
<p><a href="{_html_escape(destination)}">Click here</a> if not redirected.</p>
</noscript>
<script>
window.location.replace({_js_string(destination)});
</script>
</body>
</html>"""


def _js_string(s: str) -> str:
    """Safely encode a string for inline JS."""
    return (
        '"'
        + s.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("<", "\\x3c")
        .replace(">", "\\x3e")
        + '"'
    )


def _html_escape(s: str) -> str:
    return s.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")
