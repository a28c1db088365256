from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from ..constants import CODE_PATTERN
from ..schemas import VerifyCodeRequest, VerifyCodeResponse

router = APIRouter(prefix="", tags=["auth"])


def _failure(status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=VerifyCodeResponse(ok=False).model_dump(exclude_none=True))


@router.post("/verify-code", response_model=VerifyCodeResponse, response_model_exclude_none=True)
async def verify_code(req: VerifyCodeRequest, request: Request):
    """Let a client confirm a saved code before joining with it."""
    if not req.code:
        return _failure(status.HTTP_400_BAD_REQUEST)
    code = req.code.strip()
    if not CODE_PATTERN.match(code):
        return _failure(status.HTTP_400_BAD_REQUEST)
    name = request.app.state.table.registry.lookup(code)
    if name is None:
        return _failure(status.HTTP_401_UNAUTHORIZED)
    return VerifyCodeResponse(ok=True, name=name)
