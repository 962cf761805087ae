from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.metrics.exceptions import InvalidDateRangeError
from src.voice.exceptions import AcquisitionError, InputError


def exception_handler(app: FastAPI) -> None:
    """
    Registers global exception handlers for the FastAPI application.
    Translates domain exceptions into HTTP responses.
    """

    @app.exception_handler(InputError)
    async def input_error_handler(request: Request, exc: InputError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc), "error_type": exc.kind.value},
        )

    @app.exception_handler(AcquisitionError)
    async def acquisition_error_handler(request: Request, exc: AcquisitionError):
        # The client can retry or switch to typing the items in
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={
                "detail": str(exc),
                "error_type": exc.kind.value,
                "retryable": exc.retryable,
                "manual_entry": True,
            },
        )

    @app.exception_handler(InvalidDateRangeError)
    async def invalid_date_range_handler(request: Request, exc: InvalidDateRangeError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": exc.message},
        )
