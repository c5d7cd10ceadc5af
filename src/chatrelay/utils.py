"""Utility functions for the chat relay."""

import json

from fastapi import Response


def error_response(message: str, status_code: int) -> Response:
    """JSON error body in the shape the browser client expects."""
    return Response(
        content=json.dumps({"error": message}),
        status_code=status_code,
        media_type="application/json",
    )
