# league_portal/api/routes_auth.py
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse, JSONResponse
from oauthlib.oauth2.rfc6749.errors import InvalidGrantError

from league_portal.core.config import settings
from league_portal.core.errors import AuthError
from league_portal.deps import get_auth_provider, get_resolver
from league_portal.services.auth_provider import AuthProvider
from league_portal.services.resolver import SessionResolver

router = APIRouter(prefix="/auth", tags=["auth"])

STATE_COOKIE = "oauth_state"


# -------------------------------------------------------------------
# Routes
# -------------------------------------------------------------------
@router.get("/login")
async def auth_login(
    request: Request,
    provider: str | None = Query(default=None, description="OAuth provider, e.g. discord"),
    debug: bool = False,
    res: SessionResolver = Depends(get_resolver),
):
    # 1) Build the provider URL (PKCE verifier stays with the auth client)
    provider_name = (provider or settings.AUTH_PROVIDER).strip().lower()
    authorize_url, state = res.begin_sign_in(provider_name)

    if debug:
        return JSONResponse({
            "provider": provider_name,
            "authorize_url": authorize_url,
            "state": state,
            "redirect_uri": settings.OAUTH_REDIRECT_URI,
            "env": settings.APP_ENV,
        })

    # 2) CSRF state cookie (httponly) – short-lived
    resp = RedirectResponse(authorize_url, status_code=302)
    resp.set_cookie(
        key=STATE_COOKIE,
        value=state,
        httponly=True,
        secure=(request.url.scheme == "https"),
        max_age=600,
        samesite="lax",
        path="/",
    )
    return resp


@router.get("/callback")
async def auth_callback(
    request: Request,
    code: str,
    state: str,
    provider: AuthProvider = Depends(get_auth_provider),
):
    # 1) CSRF check
    cookie_state = request.cookies.get(STATE_COOKIE)
    if not cookie_state or cookie_state != state:
        raise HTTPException(400, "Invalid or missing OAuth state")

    # 2) Exchange the code; the SIGNED_IN event drives profile + role resolution
    try:
        await provider.exchange_code(code, state)
    except InvalidGrantError:
        # stale or replayed code – start over
        return RedirectResponse(url="/auth/login", status_code=302)
    except AuthError as e:
        raise HTTPException(status_code=400, detail=f"Token exchange failed: {e}")

    # 3) Back to the front end; clear the state cookie
    resp = RedirectResponse(settings.FRONTEND_URL, status_code=302)
    resp.delete_cookie(STATE_COOKIE, path="/")
    return resp


@router.post("/logout")
async def auth_logout(res: SessionResolver = Depends(get_resolver)):
    await res.sign_out()
    return {"ok": True, "state": res.state}
