# pylint: disable=missing-module-docstring, missing-function-docstring, invalid-name, broad-except, line-too-long
# pylint: disable=unused-argument
"""
Azure Function App for the Destiny 2 weapon manifest service.

Exposes HTTP-triggered Azure Functions for:
- Health checks and diagnostics
- Hydrated weapon lookups by item hash
- Item search by display name
- Raw manifest definition lookups
And a timer-triggered function that picks up newly published manifest snapshots.
All HTTP endpoints return JSON responses.
"""

import json
import logging
import os
import platform
import sys

import azure.functions as func
import psutil

from constants import LOG_LEVEL, MANIFEST_REFRESH_SCHEDULE
from manifest_assistant import ManifestAssistant


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Apply LOG_LEVEL to the root logger; an unknown level name falls back to INFO."""
    try:
        logging.getLogger().setLevel(str(level).strip().upper())
    except ValueError:
        logging.getLogger().setLevel(logging.INFO)
        logging.warning("Unknown LOG_LEVEL %r; using INFO.", level)


configure_logging()

app = func.FunctionApp()

assistant = ManifestAssistant()


def _json_response(payload: dict, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(json.dumps(payload, indent=2), mimetype="application/json", status_code=status_code)

# ----------------------
# Route Handler Functions
# ----------------------


@app.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def healthcheck(req: func.HttpRequest) -> func.HttpResponse:
    """
    Health check endpoint for Azure monitoring.
    Returns process diagnostics and the state of the loaded manifest snapshot.

    Args:
        req (func.HttpRequest): The HTTP request object.
    Returns:
        func.HttpResponse: JSON response with diagnostics or error.
    """
    try:
        process = psutil.Process()
        mem_info = process.memory_info()
        manifest_status = assistant.get_status()
        diagnostics = {
            "status": "ok" if manifest_status["loaded"] else "degraded",
            "python_version": sys.version,
            "platform": platform.platform(),
            "cpu_count": psutil.cpu_count(),
            "memory": {
                "rss": mem_info.rss,  # Resident Set Size in bytes
                "vms": mem_info.vms,  # Virtual Memory Size in bytes
            },
            "manifest": manifest_status,
            "env": {
                "LOG_LEVEL": logging.getLevelName(logging.getLogger().getEffectiveLevel()),
                "AZURE_STORAGE_CONNECTION_STRING": bool(os.getenv("AZURE_STORAGE_CONNECTION_STRING")),
            }
        }
        return _json_response(diagnostics)
    except Exception as e:
        return _json_response({"status": "error", "error": str(e)}, 500)


# --- Item Endpoints ---

@app.route(route="item/{hash}", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def item(req: func.HttpRequest) -> func.HttpResponse:
    """
    Returns the hydrated view of a Destiny 2 item: stats with names, fixed perks, and random perk columns.
    Requires the signed 32-bit item hash as a route parameter.

    Args:
        req (func.HttpRequest): The HTTP request object.
    Returns:
        func.HttpResponse: JSON ItemView, or an error with status 400/404/503.
    """
    hash_val = req.route_params.get("hash")
    logging.info("[item] GET request received for %s.", hash_val)
    try:
        result, status = assistant.get_item(hash_val)
    except Exception as e:
        logging.error("[item] Failed to hydrate item %s: %s", hash_val, e)
        return _json_response({"error": "Failed to fetch item details."}, 500)
    if status != 200:
        logging.warning("[item] Item %s not returned. Status: %d", hash_val, status)
    return _json_response(result, status)


@app.route(route="search/{term?}", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def search(req: func.HttpRequest) -> func.HttpResponse:
    """
    Searches items by display name (case-sensitive substring, at most 20 results).
    The term is taken from the route, or from the 'q' query parameter.

    Args:
        req (func.HttpRequest): The HTTP request object.
    Returns:
        func.HttpResponse: JSON envelope {"Response": {"results": {"results": [...]}}} or error.
    """
    term = req.route_params.get("term") or req.params.get("q") or ""
    logging.info("[search] GET request received.")
    try:
        result, status = assistant.search(term)
    except Exception as e:
        logging.error("[search] Search failed: %s", e)
        return _json_response({"error": "An unexpected error occurred."}, 500)
    return _json_response(result, status)


@app.route(route="manifest/definition", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def manifest_definition(req: func.HttpRequest) -> func.HttpResponse:
    """
    Returns the decoded manifest definition for a hash.
    Requires 'hash' query parameter and optional 'type'.

    Args:
        req (func.HttpRequest): The HTTP request object.
    Returns:
        func.HttpResponse: JSON response with the definition or error.
    """
    logging.info("[manifest/definition] GET request received.")
    hash_val = req.params.get("hash")
    if not hash_val:
        logging.error("[manifest/definition] Missing 'hash' in request.")
        return _json_response({"error": "Missing 'hash' query parameter."}, 400)
    type_val = req.params.get("type")
    try:
        result, status = assistant.get_definition(hash_val, type_val)
    except Exception as e:
        logging.error("[manifest/definition] Lookup failed: %s", e)
        return _json_response({"error": "Failed to look up definition."}, 500)
    return _json_response(result, status)


# --- Snapshot pickup ---

@app.timer_trigger(schedule=MANIFEST_REFRESH_SCHEDULE, arg_name="timer", run_on_startup=True, use_monitor=False)
def manifest_refresh(timer: func.TimerRequest) -> None:
    """
    Loads the most recently published manifest snapshot, if it is newer than the active one.
    """
    if timer.past_due:
        logging.warning("[manifest_refresh] Timer is past due.")
    try:
        if assistant.refresh_snapshot():
            logging.info("[manifest_refresh] New manifest snapshot loaded: %s", assistant.get_status().get("version"))
    except Exception as e:
        logging.error("[manifest_refresh] Snapshot refresh failed: %s", e)
