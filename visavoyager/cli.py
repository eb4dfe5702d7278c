"""Command-line interface for the visa research assistant."""

import asyncio
import json
import mimetypes
from pathlib import Path
from typing import Annotated

import typer

from .config.factory import create_from_profile
from .config.loader import list_profiles, load_config
from .orchestration.errors import VisaVoyagerError
from .orchestration.models import DocTemplate, VisaPolicy
from .settings import DEFAULT_PROFILE

app = typer.Typer(
    name="visavoyager",
    help="Search-grounded visa research with self-correcting verification.",
    add_completion=False,
)

ProfileOption = Annotated[
    str,
    typer.Option("--profile", "-p", help="Configuration profile (see 'profiles')"),
]
FormatOption = Annotated[
    str,
    typer.Option("--format", "-f", help="Output format: text or json"),
]


def _check_format(output_format: str) -> None:
    if output_format not in ("text", "json"):
        typer.echo("Error: Format must be one of: text, json", err=True)
        raise typer.Exit(1)


def _run(coro):
    """Run a coroutine, turning expected failures into a clean exit."""
    try:
        return asyncio.run(coro)
    except (VisaVoyagerError, KeyError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _voyager(profile: str | None):
    return create_from_profile(load_config(profile or DEFAULT_PROFILE))


def _progress(stage: str) -> None:
    typer.echo(f"  ... {stage}", err=True)


def _print_policy(policy: VisaPolicy) -> None:
    verification = policy.verification
    typer.echo(f"{policy.country} ({policy.purpose}, citizen of {policy.citizenship})")
    typer.echo(f"Status: {policy.visa_status.label}")
    typer.echo(
        f"Confidence: {verification.score:g}/10 ({policy.confidence.value})"
        f" | pass={verification.passed}"
    )
    typer.echo(f"Auditor: {verification.reasoning}")
    typer.echo()
    typer.echo(policy.summary)
    typer.echo(f"\nTimeline: {policy.timeline}")

    if policy.requirements:
        typer.echo("\nRequirements:")
        for requirement in policy.requirements:
            typer.echo(f"  - {requirement}")

    if policy.whats_next:
        typer.echo("\nWhat's next:")
        for i, step in enumerate(policy.whats_next, 1):
            typer.echo(f"  {i}. {step.title}: {step.description}")

    if policy.travel_tips:
        typer.echo("\nTravel tips:")
        for tip in policy.travel_tips:
            typer.echo(f"  [{tip.category}] {tip.tip}")

    typer.echo(f"\nSources ({len(policy.sources)}):")
    for source in policy.sources:
        typer.echo(f"  - {source.title or source.uri}: {source.uri}")


@app.command()
def purposes(
    citizenship: Annotated[str, typer.Argument(help="Traveller's citizenship")],
    destination: Annotated[str, typer.Argument(help="Destination country")],
    profile: ProfileOption = None,
    output_format: FormatOption = "text",
):
    """Suggest common travel purposes for a destination."""
    _check_format(output_format)

    async def _purposes():
        async with _voyager(profile) as voyager:
            return await voyager.suggest_purposes(citizenship, destination)

    results = _run(_purposes())

    if output_format == "json":
        typer.echo(json.dumps([p.model_dump() for p in results], indent=2))
        return

    if not results:
        typer.echo("No purposes suggested.")
        return
    for p in results:
        typer.echo(f"{p.id}: {p.label}")
        if p.description:
            typer.echo(f"   {p.description}")


@app.command()
def advisory(
    destination: Annotated[str, typer.Argument(help="Destination country")],
    profile: ProfileOption = None,
    output_format: FormatOption = "text",
):
    """Get safety and etiquette tips for a destination."""
    _check_format(output_format)

    async def _advisory():
        async with _voyager(profile) as voyager:
            return await voyager.travel_advisory(destination)

    tips = _run(_advisory())

    if output_format == "json":
        typer.echo(json.dumps([t.model_dump() for t in tips], indent=2))
        return
    for tip in tips:
        typer.echo(f"[{tip.category}] {tip.tip}")


@app.command()
def search(
    citizenship: Annotated[str, typer.Argument(help="Traveller's citizenship")],
    destination: Annotated[str, typer.Argument(help="Destination country")],
    purpose: Annotated[str, typer.Argument(help="Travel purpose, e.g. Tourism")],
    residency: Annotated[
        str,
        typer.Option("--residency", "-r", help="Country of residence (defaults to citizenship)"),
    ] = None,
    with_advisory: Annotated[
        bool,
        typer.Option("--with-advisory", "-a", help="Fetch travel tips concurrently"),
    ] = False,
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Also write the policy JSON to this file"),
    ] = None,
    profile: ProfileOption = None,
    output_format: FormatOption = "text",
):
    """
    Research visa requirements with self-correcting verification.

    Examples:

        visavoyager search Canada Japan Tourism

        visavoyager search India Germany Business -r "United Arab Emirates" --with-advisory

        visavoyager search Canada Japan Tourism --format json -o policy.json
    """
    _check_format(output_format)
    residency = residency or citizenship

    async def _search():
        async with _voyager(profile) as voyager:
            if with_advisory:
                return await voyager.search_with_advisory(
                    citizenship, residency, destination, purpose, on_progress=_progress
                )
            return await voyager.search_visa_info(
                citizenship, residency, destination, purpose, on_progress=_progress
            )

    policy = _run(_search())
    policy_json = policy.model_dump_json(by_alias=True, indent=2)

    if output:
        output.write_text(policy_json)
        typer.echo(f"Saved policy to {output}", err=True)

    if output_format == "json":
        typer.echo(policy_json)
    else:
        _print_policy(policy)


@app.command()
def checklist(
    policy_file: Annotated[
        Path,
        typer.Argument(help="Policy JSON written by 'search --output'", exists=True, dir_okay=False),
    ],
    profile: ProfileOption = None,
    output_format: FormatOption = "text",
):
    """Generate a document checklist for a saved policy."""
    _check_format(output_format)
    policy = VisaPolicy.model_validate_json(policy_file.read_text())

    async def _checklist():
        async with _voyager(profile) as voyager:
            return await voyager.generate_checklist(policy)

    items = _run(_checklist())

    if output_format == "json":
        typer.echo(json.dumps([i.model_dump(by_alias=True) for i in items], indent=2))
        return
    for item in items:
        marker = "*" if item.required else " "
        typer.echo(f"[ ]{marker} {item.name}: {item.description}")


@app.command()
def draft(
    template: Annotated[DocTemplate, typer.Argument(help="Document kind")],
    fields: Annotated[
        list[str],
        typer.Option("--field", "-F", help="Document detail as key=value (repeatable)"),
    ] = None,
    profile: ProfileOption = None,
):
    """
    Draft a supporting document.

    Example:

        visavoyager draft cover-letter -F destination=Japan -F name="Jane Doe"
    """
    values: dict[str, str] = {}
    for item in fields or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            typer.echo(f"Error: Invalid field '{item}', expected key=value", err=True)
            raise typer.Exit(1)
        values[key.strip()] = value.strip()

    async def _draft():
        async with _voyager(profile) as voyager:
            return await voyager.generate_document(template, values)

    typer.echo(_run(_draft()))


@app.command()
def passport(
    image_path: Annotated[
        Path,
        typer.Argument(help="Passport image file", exists=True, dir_okay=False),
    ],
    profile: ProfileOption = None,
):
    """Extract identity fields from a passport image (JSON output)."""
    mime_type = mimetypes.guess_type(image_path.name)[0] or "image/jpeg"

    async def _passport():
        async with _voyager(profile) as voyager:
            return await voyager.extract_passport_fields(image_path.read_bytes(), mime_type)

    details = _run(_passport())
    typer.echo(details.model_dump_json(by_alias=True, indent=2))


@app.command()
def profiles():
    """List available configuration profiles."""
    typer.echo("Available profiles:\n")
    for name, config in list_profiles().items():
        typer.echo(f"  {name}")
        typer.echo(f"    Backend: {config.provider.backend}")
        typer.echo(f"    Model: {config.provider.model or 'default'}")
        typer.echo(
            f"    Search: {config.search_loop.max_retries} retries, "
            f"accept >= {config.search_loop.accept_score:g}, "
            f"on exhaustion: {config.search_loop.exhaustion_strategy}"
        )
        typer.echo()


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
