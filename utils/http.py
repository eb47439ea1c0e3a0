import json
import math
import os
from datetime import date, datetime

import azure.functions as func


def cors_headers():
    return {
        "Access-Control-Allow-Origin": os.getenv("ALLOWED_ORIGIN", "*"),
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
    }


def json_serial(obj):
    """JSON serializer for objects not serializable by default json code"""
    if isinstance(obj, float) and (math.isnan(obj) or math.isinf(obj)):
        return None
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    return str(obj)


def respond(body=None, status=200):
    return func.HttpResponse(
        json.dumps(body, default=json_serial) if body is not None else "",
        status_code=status,
        mimetype="application/json",
        headers=cors_headers(),
    )


def error_response(message: str, status: int):
    return respond({"error": message}, status=status)


def options_response():
    return func.HttpResponse("", status_code=204, headers=cors_headers())
