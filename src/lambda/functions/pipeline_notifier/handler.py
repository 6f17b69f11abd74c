"""Relay CodePipeline state changes to chat webhooks.

Webhook URLs live in SSM parameters; each ``HOOK_URL_PARAMETER_PATH_<n>``
environment variable names one parameter path. The URLs are resolved on every
invocation so rotated webhooks are picked up without a redeploy.
"""

import json
import os
import urllib.error
import urllib.request
from datetime import datetime
from typing import Any, Dict, List, Tuple

import boto3

from shared.utils.logger import get_logger

logger = get_logger(__name__)

HOOK_URL_KEY = "HOOK_URL_PARAMETER_PATH"
RED = "#df0505"
GREEN = "#11aa32"
CONSOLE_URL = "https://console.aws.amazon.com/codepipeline/home?region={region}#/view/{pipeline}"


def _variable_order(key: str) -> Tuple[int, str]:
    suffix = key[len(HOOK_URL_KEY) :].lstrip("_")
    return (int(suffix), key) if suffix.isdigit() else (-1, key)


def get_hook_urls() -> List[str]:
    """Resolve every configured webhook parameter, in numeric variable order."""
    client = boto3.client("ssm")
    hook_urls: List[str] = []
    for key in sorted((k for k in os.environ if k.startswith(HOOK_URL_KEY)), key=_variable_order):
        path = os.environ[key]
        parameter = client.get_parameter(Name=path, WithDecryption=True)
        value = parameter["Parameter"]["Value"]
        hook_urls.append(value)
        logger.info("Resolved webhook parameter", extra={"env_key": key, "path": path, "url_prefix": value[:40]})
    return hook_urls


def epoch_seconds(timestamp: str) -> int:
    """Convert an EventBridge ``time`` (ISO-8601, ``Z`` suffix) to epoch seconds."""
    return int(datetime.fromisoformat(timestamp.replace("Z", "+00:00")).timestamp())


def build_message(event: Dict[str, Any], app_url: str) -> Dict[str, Any]:
    detail = event["detail"]
    pipeline = detail["pipeline"]
    state = detail["state"]
    region = event["region"]
    text = f"{pipeline} state changed to: {state}. App URL: {app_url}"

    return {
        "attachments": [
            {
                "fallback": text,
                "color": GREEN if state == "SUCCEEDED" else RED,
                "title": pipeline,
                "title_link": CONSOLE_URL.format(region=region, pipeline=pipeline),
                "text": text,
                "fields": [{"title": "AWS Account", "value": event["account"], "short": False}],
                "footer": "AWS CodePipeline State Update",
                "ts": epoch_seconds(event["time"]),
            }
        ]
    }


def _post_json(url: str, payload: Dict[str, Any]) -> int:
    request = urllib.request.Request(
        url,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    with urllib.request.urlopen(request, timeout=10) as response:
        return response.status


def main(event: Dict[str, Any], context: Any) -> str:
    logger.info("Received pipeline event", extra={"detail": event.get("detail")})
    message = build_message(event, os.environ.get("APP_URL", ""))

    for index, url in enumerate(get_hook_urls()):
        try:
            status = _post_json(url, message)
        except urllib.error.HTTPError as exc:
            logger.error("Webhook rejected pipeline update", extra={"hook_index": index, "status_code": exc.code})
            continue
        except urllib.error.URLError as exc:
            logger.error("Webhook unreachable", extra={"hook_index": index, "error": str(exc.reason)})
            continue
        logger.info("Posted pipeline update", extra={"hook_index": index, "status_code": status})

    return json.dumps(message)
