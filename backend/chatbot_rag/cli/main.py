"""CLI entrypoint for the chatbot RAG service."""

from __future__ import annotations

import json
import os
from contextlib import ExitStack
from pathlib import Path
from typing import List, Optional

import requests
import typer

app = typer.Typer(name="cbrag", help="Chatbot RAG command-line interface")

DEFAULT_HOST = "http://127.0.0.1:8000"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip("/")
    env_host = os.environ.get("CBRAG_HOST")
    if env_host:
        return env_host.rstrip("/")
    return DEFAULT_HOST


def _headers(api_key: Optional[str]) -> dict[str, str]:
    return {"X-Embedding-Key": api_key} if api_key else {}


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    resp = requests.request(method, url, timeout=60, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


def _echo(resp: requests.Response) -> None:
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def add(
    tenant: str = typer.Argument(..., help="Tenant identifier"),
    text: Optional[str] = typer.Option(None, "--text", help="Inline text content"),
    path: Optional[Path] = typer.Option(None, "--path", help="Read text content from this file"),
    url: Optional[str] = typer.Option(None, "--url", help="Register the content as a url data source"),
    title: Optional[str] = typer.Option(None, "--title", help="Data source title"),
    vectorize: bool = typer.Option(True, "--vectorize/--no-vectorize", help="Ingest immediately"),
    api_key: Optional[str] = typer.Option(None, "--api-key", envvar="CBRAG_EMBEDDING_API_KEY"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Create a text or url data source."""
    if text is None and path is None:
        typer.echo("Provide --text or --path", err=True)
        raise typer.Exit(code=2)
    content = text if text is not None else path.expanduser().read_text(encoding="utf-8")
    payload: dict[str, object] = {
        "type": "url" if url else "text",
        "content": content,
        "title": title,
        "url": url,
        "vectorize": vectorize,
    }
    resp = _request("POST", f"/tenants/{tenant}/documents", host=host, json=payload, headers=_headers(api_key))
    _echo(resp)


@app.command()
def upload(
    tenant: str = typer.Argument(..., help="Tenant identifier"),
    paths: List[Path] = typer.Argument(..., help="File(s) to upload"),
    title: Optional[str] = typer.Option(None, "--title", help="Data source title"),
    vectorize: bool = typer.Option(True, "--vectorize/--no-vectorize", help="Ingest immediately"),
    api_key: Optional[str] = typer.Option(None, "--api-key", envvar="CBRAG_EMBEDDING_API_KEY"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Upload one file, or several in a single batch, as data sources."""
    file_paths = [path.expanduser() for path in paths]
    if len(file_paths) > 1:
        with ExitStack() as stack:
            files = [("files", (file_path.name, stack.enter_context(file_path.open("rb")))) for file_path in file_paths]
            resp = _request(
                "POST",
                f"/tenants/{tenant}/documents/batch-upload",
                host=host,
                files=files,
                headers=_headers(api_key),
            )
        _echo(resp)
        return

    data: dict[str, object] = {"vectorize": str(vectorize).lower()}
    if title:
        data["title"] = title
    with file_paths[0].open("rb") as handle:
        resp = _request(
            "POST",
            f"/tenants/{tenant}/documents/upload",
            host=host,
            files={"file": (file_paths[0].name, handle)},
            data=data,
            headers=_headers(api_key),
        )
    _echo(resp)


@app.command()
def vectorize(
    document_id: str = typer.Argument(..., help="Data source identifier"),
    api_key: Optional[str] = typer.Option(None, "--api-key", envvar="CBRAG_EMBEDDING_API_KEY"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Re-chunk and re-embed a data source."""
    _echo(_request("POST", f"/documents/{document_id}/vectorize", host=host, headers=_headers(api_key)))


@app.command()
def delete(
    document_id: str = typer.Argument(..., help="Data source identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Delete a data source and its chunks."""
    _echo(_request("DELETE", f"/documents/{document_id}", host=host))


@app.command()
def purge(
    tenant: str = typer.Argument(..., help="Tenant identifier"),
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Delete every data source and chunk of a tenant."""
    if not yes:
        typer.confirm(f"Delete all data sources of tenant {tenant}?", abort=True)
    _echo(_request("DELETE", f"/tenants/{tenant}/documents", host=host))


@app.command()
def search(
    tenant: str = typer.Argument(..., help="Tenant identifier"),
    q: str = typer.Argument(..., help="Query text"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum number of results"),
    threshold: Optional[float] = typer.Option(None, "--threshold", help="Minimum cosine similarity"),
    api_key: Optional[str] = typer.Option(None, "--api-key", envvar="CBRAG_EMBEDDING_API_KEY"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Rank a tenant's chunks against a query."""
    payload: dict[str, object] = {"query": q}
    if limit is not None:
        payload["limit"] = limit
    if threshold is not None:
        payload["threshold"] = threshold
    _echo(_request("POST", f"/tenants/{tenant}/search", host=host, json=payload, headers=_headers(api_key)))


@app.command()
def context(
    tenant: str = typer.Argument(..., help="Tenant identifier"),
    q: str = typer.Argument(..., help="Query text"),
    max_chars: Optional[int] = typer.Option(None, "--max-chars", help="Character budget"),
    api_key: Optional[str] = typer.Option(None, "--api-key", envvar="CBRAG_EMBEDDING_API_KEY"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Print the assembled prompt context for a query."""
    payload: dict[str, object] = {"query": q}
    if max_chars is not None:
        payload["max_chars"] = max_chars
    resp = _request("POST", f"/tenants/{tenant}/context", host=host, json=payload, headers=_headers(api_key))
    typer.echo(resp.json()["context"])


@app.command()
def stats(
    tenant: str = typer.Argument(..., help="Tenant identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show document and chunk counts for a tenant."""
    _echo(_request("GET", f"/tenants/{tenant}/stats", host=host))


if __name__ == "__main__":
    app()
