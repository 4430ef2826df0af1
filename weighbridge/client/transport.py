import logging
from typing import Any

import requests

from weighbridge.core.errors import StoreError, error_from_payload

logger = logging.getLogger(__name__)


def send(
    http: Any,
    method: str,
    url: str,
    *,
    timeout: float | None,
    headers: dict | None = None,
    params: dict | None = None,
    json: Any = None,
) -> Any:
    """
    One request/response exchange with the gate service.

    `http` is a `requests.Session` (or anything with the same `request`
    signature, e.g. a FastAPI TestClient). Non-2xx responses are raised as the
    matching error from `weighbridge.core.errors`.
    """
    if params:
        params = {k: v for k, v in params.items() if v is not None}
    try:
        resp = http.request(method, url, headers=headers, params=params or None, json=json, timeout=timeout)
    except requests.RequestException as e:
        logger.warning("%s %s failed: %s", method, url, e)
        raise StoreError(f"Gate service unreachable: {e}", status_code=503)

    if resp.status_code // 100 == 2:
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    try:
        detail = resp.json().get("detail")
    except ValueError:
        detail = resp.text[:200]
    err = error_from_payload(resp.status_code, detail)
    logger.info("%s %s -> %s %s", method, url, resp.status_code, getattr(err, "code", ""))
    raise err
