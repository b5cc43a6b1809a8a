import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from settlement.application.container import ApplicationContainer
from settlement.presentation import api

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        if error.get("type") == "missing":
            message = "Missing required fields"
        else:
            message = str(error.get("msg", "Invalid request")).removeprefix("Value error, ")
        if message not in messages:
            messages.append(message)
    return "; ".join(messages) or "Invalid request"


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    message = _validation_message(exc)
    logger.warning(f"Rejected request to {request.url.path}: {message}")
    return JSONResponse(
        content={"success": False, "message": message},
        status_code=HTTPStatus.BAD_REQUEST,
    )


def build_api(container: ApplicationContainer) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(api.router)
    container.wire(modules=[api])
    app.container = container
    return app
