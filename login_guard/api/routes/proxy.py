"""Catch-all route handing every request to the dispatcher."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from login_guard.services.dispatcher import RequestDispatcher

router = APIRouter()

PROXIED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def get_dispatcher(request: Request) -> RequestDispatcher:
    return request.app.state.dispatcher


@router.api_route("/{full_path:path}", methods=PROXIED_METHODS, include_in_schema=False)
async def proxy(
    request: Request,
    dispatcher: Annotated[RequestDispatcher, Depends(get_dispatcher)],
) -> Response:
    """Rate-limit the request if its path is protected, else forward it."""
    return await dispatcher.handle(request)
