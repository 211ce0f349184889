"""
HTTP surface: the contact form, delivery settings and batch role updates.

Errors are JSON ``{"error": message}``; form validation failures on the
contact endpoint also carry ``fields`` (field -> messages). Writes to
settings and users take HTTP Basic credentials of a staff account.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from starlette.exceptions import HTTPException as StarletteHTTPException

from timberline.db import identity, leads, settings as db_settings, users
from timberline.db.models import UserAccount
from timberline.db.permissions import can
from timberline.utils.config import get_settings
from timberline.utils.errors import (
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    TimberlineError,
    ValidationError,
)
from timberline.utils.logger import get_logger

_logger = get_logger(__name__)

app = FastAPI(title="Timberline Storefront API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class RoleUpdate(BaseModel):
    userId: str = Field(min_length=1)
    role: str


class BatchUpdateRoles(BaseModel):
    updates: List[RoleUpdate]


# ---------- Authentication ----------

_basic = HTTPBasic(auto_error=False)
_CHALLENGE = {"WWW-Authenticate": "Basic"}


def require_permission(section: str, action: str = "edit"):
    """
    Dependency resolving HTTP Basic credentials to the signed-in account.

    401 without valid credentials, 403 when the role may not ``action`` the
    back-office ``section``.
    """

    async def dependency(
        credentials: Optional[HTTPBasicCredentials] = Depends(_basic),
    ) -> UserAccount:
        if credentials is None:
            raise HTTPException(401, "Authentication required", headers=_CHALLENGE)
        try:
            user = await identity.sign_in(credentials.username, credentials.password)
        except ValidationError:
            raise HTTPException(401, identity.BAD_CREDENTIALS, headers=_CHALLENGE) from None
        if not can(user.role, section, action):
            _logger.warning(f"{user.email} refused {action} on {section}")
            raise PermissionDeniedError()
        return user

    return dependency


# ---------- Error mapping ----------


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers
    )


@app.exception_handler(RequestValidationError)
async def _bad_request(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid request data"})


@app.exception_handler(ValidationError)
async def _invalid_input(request: Request, exc: ValidationError):
    return _invalid(exc, 400)


@app.exception_handler(PermissionDeniedError)
async def _forbidden(request: Request, exc: PermissionDeniedError):
    return JSONResponse(status_code=403, content={"error": exc.message})


@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"error": exc.message})


@app.exception_handler(ExternalServiceError)
async def _unavailable(request: Request, exc: ExternalServiceError):
    return JSONResponse(status_code=503, content={"error": exc.message})


@app.exception_handler(TimberlineError)
async def _failed(request: Request, exc: TimberlineError):
    _logger.error(f"{request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": exc.message})


def _invalid(exc: ValidationError, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"error": exc.message, "fields": exc.field_errors}
    )


# ---------- Routes ----------


@app.get("/")
def root():
    return {"status": "ok", "service": "timberline-api"}


@app.post("/api/contact", status_code=201)
async def contact(payload: Dict[str, Any] = Body(...)):
    try:
        lead_id = await leads.submit_contact(payload)
    except ValidationError as exc:
        return _invalid(exc, 422)
    return {"id": lead_id}


@app.get("/api/settings/delivery")
async def get_delivery():
    return asdict(await db_settings.get_delivery_settings())


@app.put("/api/settings/delivery")
async def put_delivery(
    payload: Dict[str, Any] = Body(...),
    staff: UserAccount = Depends(require_permission("settings")),
):
    saved = await db_settings.update_delivery_settings(payload)
    _logger.info(f"{staff.email} updated delivery settings")
    return asdict(saved)


@app.post("/api/users/batch-update-roles")
async def batch_update_roles(
    payload: Dict[str, Any] = Body(...),
    staff: UserAccount = Depends(require_permission("users")),
):
    try:
        body = BatchUpdateRoles.model_validate(payload)
    except PydanticValidationError:
        return JSONResponse(status_code=400, content={"error": "Invalid request data"})
    updated = await users.batch_update_roles(
        [{"user_id": u.userId, "role": u.role} for u in body.updates]
    )
    _logger.info(f"{staff.email} updated {len(updated)} role(s)")
    return {"users": [u.public_dict() for u in updated]}


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
