from __future__ import annotations

import secrets
import sys
from typing import Any

import click
import typer

from . import __version__
from .cli_shared import (
    DEFAULT_STACK,
    INTERNS_API_URL,
    INTERNS_STACK,
    GlobalOpts,
    OpError,
    UsageError,
    _api_request,
    _env_or_none,
    _load_json_object,
    _print_json,
    _resolve_endpoint,
    _rich_error,
)

app = typer.Typer(
    name="interns",
    help="Operate the interns API: records, counts and task summaries.",
    no_args_is_help=True,
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"interns {__version__}")
        raise typer.Exit(code=0)


@app.callback()
def app_callback(
    ctx: typer.Context,
    endpoint: str = typer.Option(
        "",
        "--endpoint",
        help=f"API base URL (env override: {INTERNS_API_URL})",
    ),
    stack: str = typer.Option(
        "",
        "--stack",
        help=f"Stack to read the InternsApiUrl output from (env override: {INTERNS_STACK})",
    ),
    pretty: bool = typer.Option(False, "--pretty", help="Indent JSON output"),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True),
) -> None:
    del version
    ctx.obj = {
        "g": GlobalOpts(
            endpoint=(endpoint.strip() or _env_or_none(INTERNS_API_URL) or ""),
            stack=(stack.strip() or _env_or_none(INTERNS_STACK) or DEFAULT_STACK),
            pretty=pretty,
        )
    }


def _g(ctx: typer.Context) -> GlobalOpts:
    obj = ctx.obj if isinstance(ctx.obj, dict) else {}
    g = obj.get("g")
    if isinstance(g, GlobalOpts):
        return g
    return GlobalOpts(endpoint=_env_or_none(INTERNS_API_URL) or "", stack=DEFAULT_STACK, pretty=False)


def _call(ctx: typer.Context, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
    g = _g(ctx)
    return _api_request(method=method, endpoint=_resolve_endpoint(g), path=path, **kwargs)


def _emit(ctx: typer.Context, obj: Any) -> None:
    _print_json(obj, pretty=_g(ctx).pretty)


@app.command("list", help="List interns with optional filters, search, paging and sort.")
def list_interns(
    ctx: typer.Context,
    batch: str = typer.Option("", "--batch", help="Exact batch filter"),
    search: str = typer.Option("", "--search", help="Intern name search"),
    limit: int | None = typer.Option(None, "--limit", min=0),
    offset: int | None = typer.Option(None, "--offset", min=0),
    sort: str = typer.Option("", "--sort", help="Field to order by"),
    order: str = typer.Option("", "--order", help="'desc' for descending, ascending otherwise"),
) -> None:
    query = {
        "batch": batch,
        "search": search,
        "limit": limit,
        "offset": offset,
        "sort": sort,
        "order": order,
    }
    _emit(ctx, _call(ctx, "GET", "/interns", query=query))


@app.command("get", help="Fetch one intern by id.")
def get_intern(ctx: typer.Context, intern_id: str = typer.Argument(..., help="Intern id")) -> None:
    _emit(ctx, _call(ctx, "GET", f"/interns/{intern_id}"))


@app.command("create", help="Create an intern from a JSON object.")
def create_intern(
    ctx: typer.Context,
    data_json: str = typer.Option(..., "--json", help="Intern JSON object"),
    intern_id: str = typer.Option("", "--id", help="Custom document id"),
) -> None:
    body = _load_json_object(raw=data_json, label="--json")
    if intern_id:
        body["documentId"] = intern_id
    _emit(ctx, _call(ctx, "POST", "/interns", body_obj=body))


@app.command("update", help="Patch an intern; tasksAssigned replaces the whole list.")
def update_intern(
    ctx: typer.Context,
    intern_id: str = typer.Argument(..., help="Intern id"),
    patch_json: str = typer.Option(..., "--json", help="Partial intern JSON object"),
) -> None:
    body = _load_json_object(raw=patch_json, label="--json")
    if not body:
        raise UsageError("--json must include at least one field")
    _emit(ctx, _call(ctx, "PATCH", f"/interns/{intern_id}", body_obj=body))


@app.command("delete", help="Delete an intern.")
def delete_intern(ctx: typer.Context, intern_id: str = typer.Argument(..., help="Intern id")) -> None:
    _emit(ctx, _call(ctx, "DELETE", f"/interns/{intern_id}"))


@app.command("count", help="Total number of interns.")
def count_interns(ctx: typer.Context) -> None:
    _emit(ctx, _call(ctx, "GET", "/interns/count"))


@app.command("summary", help="Task counts per status across all interns.")
def task_summary(ctx: typer.Context) -> None:
    _emit(ctx, _call(ctx, "GET", "/interns/tasks/summary"))


@app.command("check", help="Verify the API and its table are reachable.")
def check(ctx: typer.Context) -> None:
    out = _call(ctx, "GET", "/interns/count")
    _emit(ctx, {"kind": "interns.check.v1", "ok": True, "count": out.get("count")})


@app.command("smoke", help="Create, read, list and delete a throwaway intern.")
def smoke(ctx: typer.Context) -> None:
    intern_id = f"smoke-{secrets.token_hex(6)}"
    steps: list[dict[str, Any]] = []
    created = False
    try:
        _call(
            ctx,
            "POST",
            "/interns",
            body_obj={
                "documentId": intern_id,
                "internName": "Smoke Test",
                "batch": "smoke",
                "roles": ["Backend Developer"],
                "tasksAssigned": [{"title": "Setup Environment", "status": "open"}],
            },
        )
        created = True
        steps.append({"step": "create", "ok": True})

        got = _call(ctx, "GET", f"/interns/{intern_id}")
        tasks = (got.get("data") or {}).get("tasksAssigned") or []
        if not tasks or not isinstance(tasks[0], dict):
            raise OpError("smoke: created intern did not return decoded tasks")
        steps.append({"step": "get", "ok": True})

        listed = _call(ctx, "GET", "/interns", query={"batch": "smoke"})
        steps.append({"step": "list", "ok": True, "total": listed.get("total")})
    finally:
        if created:
            _call(ctx, "DELETE", f"/interns/{intern_id}")
            steps.append({"step": "delete", "ok": True})

    _emit(ctx, {"kind": "interns.smoke.v1", "ok": True, "internId": intern_id, "steps": steps})


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        result = app(args=argv, prog_name="interns", standalone_mode=False)
        if result is None:
            return 0
        return int(result)
    except typer.Exit as e:
        return int(e.exit_code)
    except click.ClickException as e:
        _rich_error(e.format_message())
        return int(e.exit_code)
    except UsageError as e:
        _rich_error(str(e))
        return 2
    except OpError as e:
        _rich_error(str(e))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
