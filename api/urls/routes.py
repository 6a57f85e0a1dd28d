"""
Routes/endpoints for the short URL API

HTTP   URI                 Action
----   ---                 ------
POST   /shorten            Issue a short URL
GET    /s/[identifier]     Redirect to the target of a live short URL
"""

from fastapi import APIRouter, Request, status
from fastapi.responses import RedirectResponse

from api.urls.models import ShortUrlCreate, ShortUrlPublic
from core.deps import ContentServiceDep
from core.utils import public_url

router = APIRouter(tags=["URL Endpoints"])


@router.post(
    "/shorten",
    response_model=ShortUrlPublic,
    status_code=status.HTTP_201_CREATED,
)
def shorten_url(
    request: Request,
    service: ContentServiceDep,
    url_in: ShortUrlCreate,
) -> ShortUrlPublic:
    """
    Issue a short URL that redirects to the given URL until it expires.
    """
    issued = service.shorten(url_in.url, wants_long_expiry=url_in.long)
    base_url = service.settings.PUBLIC_BASE_URL or str(request.base_url)
    return ShortUrlPublic(
        identifier=issued.identifier,
        short_url=public_url(base_url, issued.path),
        expires_at=issued.expires_at,
    )


@router.get("/s/{identifier}")
def redirect_short_url(identifier: str, service: ContentServiceDep) -> RedirectResponse:
    """
    Redirect to the stored URL. Unknown and expired identifiers both return 404.
    """
    return RedirectResponse(
        service.resolve_url(identifier),
        status_code=status.HTTP_302_FOUND,
    )
