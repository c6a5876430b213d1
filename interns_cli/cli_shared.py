from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

import boto3
from rich.console import Console


class InternsOpsError(Exception):
    pass


class UsageError(InternsOpsError):
    pass


class OpError(InternsOpsError):
    pass


INTERNS_API_URL = "INTERNS_API_URL"
INTERNS_STACK = "INTERNS_STACK"
DEFAULT_STACK = "InternsStack"
API_URL_OUTPUT_KEY = "InternsApiUrl"


@dataclass(frozen=True)
class GlobalOpts:
    endpoint: str
    stack: str
    pretty: bool


_ERROR_CONSOLE = Console(stderr=True)


def _rich_error(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[bold red]error:[/bold red] {msg}")


def _env_or_none(*names: str) -> str | None:
    for n in names:
        v = (os.environ.get(n) or "").strip()
        if v:
            return v
    return None


def _aws_profile_region_from_env() -> tuple[str, str]:
    profile = (os.environ.get("AWS_PROFILE") or "").strip()
    region = (os.environ.get("AWS_REGION") or "").strip()
    if not profile:
        raise UsageError("missing AWS_PROFILE (set env or pass --endpoint)")
    if not region:
        raise UsageError("missing AWS_REGION (set env or pass --endpoint)")
    return profile, region


def _account_session() -> Any:
    profile, region = _aws_profile_region_from_env()
    return boto3.session.Session(profile_name=profile, region_name=region)


def _require_stack_output(session: Any, *, stack: str, key: str) -> str:
    cf = session.client("cloudformation")
    try:
        resp = cf.describe_stacks(StackName=stack)
    except Exception as e:
        raise OpError(f"cloudformation describe-stacks failed for stack {stack!r}: {e}") from e
    stacks = resp.get("Stacks") or []
    if not stacks:
        raise OpError(f"stack not found: {stack}")
    for o in stacks[0].get("Outputs") or []:
        if isinstance(o, dict) and str(o.get("OutputKey", "")).strip() == key:
            return str(o.get("OutputValue", "")).strip()
    raise OpError(f"missing CloudFormation output {key!r} on stack {stack!r}")


def _resolve_endpoint(g: GlobalOpts) -> str:
    if g.endpoint:
        return g.endpoint
    return _require_stack_output(_account_session(), stack=g.stack, key=API_URL_OUTPUT_KEY)


def _print_json(obj: Any, *, pretty: bool) -> None:
    if pretty:
        sys.stdout.write(json.dumps(obj, indent=2, sort_keys=True) + "\n")
    else:
        sys.stdout.write(json.dumps(obj, separators=(",", ":"), sort_keys=True) + "\n")


def _load_json_object(*, raw: str, label: str) -> dict[str, Any]:
    try:
        val = json.loads(raw)
    except Exception as e:
        raise UsageError(f"invalid {label}: {e}") from e
    if not isinstance(val, dict):
        raise UsageError(f"invalid {label}: expected JSON object")
    return val


def _http_request(
    *,
    method: str,
    url: str,
    headers: dict[str, str],
    body: bytes | None = None,
    timeout_seconds: int = 30,
) -> tuple[int, bytes]:
    req = Request(url, data=body, method=str(method).upper())
    for k, v in headers.items():
        req.add_header(k, v)
    try:
        with urlopen(req, timeout=timeout_seconds) as resp:
            return int(getattr(resp, "status", 200)), resp.read()
    except HTTPError as e:
        data = e.read() if hasattr(e, "read") else b""
        return int(getattr(e, "code", 0) or 0), data
    except URLError as e:
        raise OpError(f"http request failed: {e}") from e


def _api_request(
    *,
    method: str,
    endpoint: str,
    path: str,
    query: dict[str, Any] | None = None,
    body_obj: dict[str, Any] | None = None,
) -> dict[str, Any]:
    ep = endpoint.rstrip("/")
    p = path if path.startswith("/") else f"/{path}"
    query_clean = {
        k: str(v)
        for k, v in (query or {}).items()
        if v is not None and str(v).strip() != ""
    }
    url = f"{ep}{p}"
    if query_clean:
        url += f"?{urlencode(query_clean)}"

    body_bytes = None
    headers = {"accept": "application/json"}
    if body_obj is not None:
        body_bytes = json.dumps(body_obj, separators=(",", ":")).encode("utf-8")
        headers["content-type"] = "application/json"

    status, data = _http_request(method=method, url=url, headers=headers, body=body_bytes)
    text = data.decode("utf-8", errors="replace")
    try:
        parsed = json.loads(text) if text else {}
    except Exception:
        parsed = {"raw": text}

    if not isinstance(parsed, dict):
        parsed = {"result": parsed}
    if status < 200 or status >= 300 or parsed.get("success") is False:
        msg = str(parsed.get("error") or parsed.get("message") or text).strip()
        raise OpError(f"interns request failed: status={status} method={method} path={p} message={msg}")
    return parsed
