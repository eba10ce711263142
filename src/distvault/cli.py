"""
distvault CLI

Operator commands over the dist cache and artifact ingester:
- fetch: Download a dist into the cache (rewriting artifact-sourced dists)
- exists / size / remove: Query or evict a cached dist
- ingest: Ingest uploaded ZIP archives into an organization's namespace
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer

from .cli_context import CLIContext
from .mappers import run_and_exit
from .models import Dist, Organization, UploadedArchive

app = typer.Typer(name="distvault", help="Dist cache and artifact ingestion")


def _context(ctx: typer.Context) -> CLIContext:
    if ctx.obj is None:
        ctx.obj = run_and_exit(CLIContext.from_env)
    return ctx.obj


def _parse_headers(values: Optional[List[str]]) -> Dict[str, str]:
    """Parse repeated "Name: value" options into a header dict."""
    headers: Dict[str, str] = {}
    for value in values or []:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Invalid header (expected 'Name: value'): {value}")
        headers[name.strip()] = content.strip()
    return headers


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")):
    """Dist cache and artifact ingestion for a private package repository."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@app.command()
def fetch(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Dist URL or local artifact path"),
    repo: str = typer.Argument(..., help="Source repository identifier"),
    package: str = typer.Argument(..., help="Package name (vendor/name)"),
    version: str = typer.Argument(..., help="Package version"),
    ref: str = typer.Argument(..., help="VCS reference"),
    format: str = typer.Option("zip", "--format", help="Archive format"),
    header: Optional[List[str]] = typer.Option(None, "--header", "-H", help="Request header 'Name: value'"),
):
    """Download a dist into the cache unless it is already cached."""
    context = _context(ctx)

    def _run():
        dist = Dist(repo=repo, package=package, version=version, ref=ref, format=format)
        cache = context.dist_cache
        already = cache.exists(dist)
        rewritten = cache.download(url, dist, _parse_headers(header))
        return dist, cache.filename(dist), already, rewritten

    dist, filename, already, rewritten = run_and_exit(_run)
    if already:
        typer.echo(f"Already cached: {filename}")
    else:
        typer.echo(f"Cached {dist} at {filename}")
    if rewritten:
        typer.echo(f"Dist URL: {rewritten}")


@app.command()
def exists(
    ctx: typer.Context,
    repo: str,
    package: str,
    version: str,
    ref: str,
    format: str = typer.Option("zip", "--format"),
):
    """Exit 0 if the dist is cached, 1 otherwise."""
    context = _context(ctx)
    present = run_and_exit(
        lambda: context.dist_cache.exists(Dist(repo=repo, package=package, version=version, ref=ref, format=format))
    )
    typer.echo("present" if present else "absent")
    if not present:
        raise typer.Exit(code=1)


@app.command()
def size(
    ctx: typer.Context,
    repo: str,
    package: str,
    version: str,
    ref: str,
    format: str = typer.Option("zip", "--format"),
):
    """Print the cached dist size in bytes (0 when absent)."""
    context = _context(ctx)
    nbytes = run_and_exit(
        lambda: context.dist_cache.size(Dist(repo=repo, package=package, version=version, ref=ref, format=format))
    )
    typer.echo(str(nbytes))


@app.command()
def remove(
    ctx: typer.Context,
    repo: str,
    package: str,
    version: str,
    ref: str,
    format: str = typer.Option("zip", "--format"),
):
    """Evict a dist from the cache (no-op when absent)."""
    context = _context(ctx)
    run_and_exit(
        lambda: context.dist_cache.remove(Dist(repo=repo, package=package, version=version, ref=ref, format=format))
    )
    typer.echo("removed")


@app.command()
def ingest(
    ctx: typer.Context,
    organization: str = typer.Argument(..., help="Organization alias"),
    files: List[Path] = typer.Argument(..., help="Uploaded archives"),
    keep_going: bool = typer.Option(False, "--keep-going", help="Report failing files instead of stopping"),
):
    """Ingest uploaded ZIP archives. The files are moved into the repository."""
    context = _context(ctx)

    def _run():
        org = Organization(alias=organization)
        uploads = [UploadedArchive.from_path(path) for path in files]
        ingester = context.ingester()
        if keep_going:
            return ingester.ingest_collect(uploads, org)
        return ingester.ingest(uploads, org), {}

    packages, failures = run_and_exit(_run)
    for name, directory in sorted(packages.items()):
        typer.echo(f"{name}: {directory}")
    for original_name, error in failures.items():
        typer.echo(f"FAILED {original_name}: {error}", err=True)
    if failures:
        raise typer.Exit(code=2)


if __name__ == "__main__":
    app()
