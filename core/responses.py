"""JSON reply helpers."""

from fastapi.responses import JSONResponse


def error_response(
    message: str,
    status_code: int,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the ``{"error": message}`` envelope used for every failure."""
    return JSONResponse({"error": message}, status_code=status_code, headers=headers)
