"""
responses.py — Success envelope.

Every 2xx response body is:
    {"status": <int>, "data": <any>, "message": <str>, "success": true}

Failure bodies come from AppError.to_dict() via the global error handlers.
"""

from __future__ import annotations

from flask import Response, jsonify


def api_response(data, message: str, status: int = 200) -> Response:
    response = jsonify({
        "status":  status,
        "data":    data,
        "message": message,
        "success": status < 400,
    })
    response.status_code = status
    return response
