"""
Endpoints that issue and clear the authentication cookie.
"""
import hmac
import logging

from fastapi import APIRouter, Depends, Header, Response

from ..auth import clear_auth_cookie, create_access_token, get_settings_dependency, set_auth_cookie
from ..config import Settings
from ..errors import Unauthorized
from ..schemas import TokenRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.put("/jwt")
async def issue_token(
    claims: TokenRequest,
    response: Response,
    issuer_key: str | None = Header(default=None, alias="X-Issuer-Key"),
    settings: Settings = Depends(get_settings_dependency),
):
    """
    Signs the posted claims and stores the token in an http-only cookie.

    The email is not verified here: the caller is trusted to have signed the
    user in with the identity provider first. When `token_issuer_key` is
    configured, only callers presenting it in `X-Issuer-Key` get a token.
    """
    if settings.token_issuer_key and not hmac.compare_digest(issuer_key or "", settings.token_issuer_key):
        raise Unauthorized("A valid issuer key is required")
    token = create_access_token(claims.model_dump(mode="json"), settings)
    set_auth_cookie(response, token, settings)
    logger.info(f"Issued a token for {claims.email}")
    return {"success": True}


@router.get("/logout")
async def logout(response: Response, settings: Settings = Depends(get_settings_dependency)):
    clear_auth_cookie(response, settings)
    return {"success": True}
