"""Shared HTTP plumbing for the outbound clients.

Both downstream services are called with a JSON POST and judged by the
same rule: any transport error or non-2xx status is a failure. Failures are
returned as CallResult values, never raised.
"""

from typing import Any

import requests

from .logging_utils import structured_logger
from .models import CallError, CallResult, ErrorKind

# Truncate response bodies echoed into logs and errors
MAX_ERROR_BODY_CHARS = 500


def create_session() -> requests.Session:
    """Create the HTTP session a pipeline reuses for its lifetime."""
    session = requests.Session()
    session.headers.update({"Accept": "application/json"})
    return session


def post_json(
    session: requests.Session,
    step: str,
    url: str,
    payload: Any,
    *,
    headers: dict[str, str] | None = None,
    params: dict[str, str] | None = None,
    timeout: float | None = None,
) -> CallResult[requests.Response]:
    """POST a JSON body and check the response status.

    Args:
        session: Session to send the request with
        step: Pipeline step name used in log entries
        url: Target URL
        payload: JSON-serializable body
        headers: Extra request headers
        params: Query string parameters
        timeout: Request timeout in seconds (None = client default)

    Returns:
        CallResult holding the response on 2xx, otherwise a TRANSPORT or
        HTTP_STATUS error
    """
    try:
        with structured_logger.timed_operation(step, f"POST {url}") as ctx:
            response = session.post(
                url,
                json=payload,
                headers=headers,
                params=params,
                timeout=timeout,
            )
            ctx["status_code"] = response.status_code
            ctx["reason"] = response.reason
    except requests.RequestException as e:
        return CallResult.failure(CallError(ErrorKind.TRANSPORT, str(e)))

    if not 200 <= response.status_code < 300:
        body = (response.text or "")[:MAX_ERROR_BODY_CHARS]
        return CallResult.failure(
            CallError(
                ErrorKind.HTTP_STATUS,
                f"{response.reason or 'HTTP error'} from {url}: {body}",
                status_code=response.status_code,
            )
        )

    return CallResult.success(response)
