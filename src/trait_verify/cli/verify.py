# SPDX-License-Identifier: MPL-2.0
"""
CLI Commands for Checking Statements

This module provides the command-line interface for recovering trait
requirements from a signed statement and checking them against expected
traits.
"""

import json
from typing import Dict, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from ..core.exceptions import StatementError, TraitGrammarError
from ..core.models import ValidationResult
from ..core.parser import scan_resources
from ..services.gate import TraitGate


def parse_pairs(ctx: click.Context, param: click.Parameter, values: Tuple[str, ...]) -> Dict[str, str]:
    """Turn repeated ``NAME=RAW`` options into an ordered mapping."""
    pairs: Dict[str, str] = {}
    for value in values:
        name, sep, raw = value.partition("=")
        if not sep or not name or not raw:
            raise click.BadParameter(f"expected NAME=VALUE, got {value!r}", ctx=ctx, param=param)
        pairs[name] = raw
    return pairs


def _read_statement(statement_file: str) -> str:
    with open(statement_file, "r", encoding="utf-8") as f:
        return f.read()


def _render_text(console: Console, result: ValidationResult, statement_file: str, action: Optional[str]) -> None:
    console.print(f"Statement: {statement_file}")
    if action:
        console.print(f"Action: {action}")
    if result.valid:
        console.print("Status: [green]✓ VALID[/green]")
        return

    console.print("Status: [red]✗ INVALID[/red]")
    table = Table(title="Mismatches")
    table.add_column("Trait")
    table.add_column("Expected")
    table.add_column("Found")
    table.add_column("Reason")
    for mismatch in result.mismatches:
        table.add_row(mismatch.trait, mismatch.expected, mismatch.found or "-", mismatch.reason.value)
    console.print(table)


@click.command()
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--provider", "-p", required=True, help="Provider whose traits to extract")
@click.option("--output", "-o", type=click.Choice(["text", "json"]), default="text", help="Output format")
def parse(statement_file: str, provider: str, output: str) -> None:
    """Show the trait requirements, action and verification id of a statement."""
    try:
        resources = scan_resources(_read_statement(statement_file))
    except StatementError as e:
        raise click.ClickException(e.message) from e

    traits = {name: req.raw for name, req in resources.traits_for(provider).items()}
    if output == "json":
        click.echo(
            json.dumps(
                {
                    "provider": provider,
                    "traits": traits,
                    "action": resources.action,
                    "verification_id": resources.verification_id,
                    "malformed": resources.malformed,
                },
                indent=2,
            )
        )
        return

    click.echo(f"Provider: {provider}")
    for name, raw in traits.items():
        click.echo(f"  {name}: {raw}")
    if not traits:
        click.echo("  (no traits)")
    click.echo(f"Action: {resources.action or '-'}")
    click.echo(f"Verification ID: {resources.verification_id or '-'}")
    for line in resources.malformed:
        click.echo(f"  ⚠ skipped malformed resource: {line}", err=True)


@click.command()
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--provider", "-p", required=True, help="Provider the expected traits belong to")
@click.option("--expect", "-e", "expected", multiple=True, callback=parse_pairs,
              help="Expected trait as NAME=RAW, e.g. followers=gte:1000 (repeatable)")
@click.option("--action", "-a", help="Expected action")
@click.option("--output", "-o", type=click.Choice(["text", "json", "compact"]),
              default="text", help="Output format")
@click.pass_context
def check(
    ctx: click.Context,
    statement_file: str,
    provider: str,
    expected: Dict[str, str],
    action: Optional[str],
    output: str,
) -> None:
    """Check a statement against expected traits; exit code 1 if it is not strict enough."""
    if not expected and not action:
        raise click.UsageError("Give at least one --expect or --action")

    try:
        gate = TraitGate(provider, expected, action=action)
    except TraitGrammarError as e:
        raise click.BadParameter(e.message, ctx=ctx, param_hint="--expect") from e

    message = _read_statement(statement_file)
    try:
        result = gate.check(message)
    except StatementError as e:
        raise click.ClickException(e.message) from e

    if output == "json":
        click.echo(result.to_json())
    elif output == "compact":
        status = "VALID" if result.valid else f"INVALID ({len(result.mismatches)} mismatches)"
        click.echo(f"{statement_file}: {status}")
    else:
        _render_text(Console(), result, statement_file, action)

    ctx.exit(0 if result.valid else 1)
