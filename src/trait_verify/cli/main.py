# SPDX-License-Identifier: MPL-2.0
"""Main CLI entry point."""
import asyncio
import json
import logging
import sys
from typing import Dict, Optional

import click

from trait_verify.cli.verify import check, parse, parse_pairs
from trait_verify.core.crypto import DevKeyPair
from trait_verify.core.exceptions import TraitVerifyError
from trait_verify.core.statement import build_statement
from trait_verify.services.signing import DEFAULT_ACTION, generate_signature


def _write(text: str, output: Optional[str]) -> None:
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text)
        click.echo(f"Saved to {output}", err=True)
    else:
        click.echo(text)


def load_key(key_file: str) -> DevKeyPair:
    """Load a development key pair from a JWK file."""
    try:
        with open(key_file, "r", encoding="utf-8") as f:
            return DevKeyPair.from_jwk(json.load(f))
    except (OSError, ValueError, KeyError) as e:
        click.echo(f"Error loading key: {e}", err=True)
        sys.exit(1)


@click.group()  # type: ignore[misc]
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Trait Verify CLI."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


@cli.command()  # type: ignore[misc]
def version() -> None:
    """Show version information."""
    from trait_verify import __version__

    click.echo(f"Trait Verify v{__version__}")


@cli.command()  # type: ignore[misc]
@click.option("--output", "-o", required=True, type=click.Path(dir_okay=False), help="Where to write the JWK")
@click.option("--kid", help="Key identifier")
def keygen(output: str, kid: Optional[str]) -> None:
    """Generate a development signing key (stands in for a wallet)."""
    key_pair = DevKeyPair.generate(kid)
    with open(output, "w", encoding="utf-8") as f:
        json.dump(key_pair.to_jwk(private=True), f, indent=2)
    click.echo(f"Key saved to {output}")
    click.echo(f"Address: {key_pair.address}")


@cli.command()  # type: ignore[misc]
@click.option("--address", required=True, help="Wallet address of the signer")
@click.option("--provider", "-p", help="Provider the traits are scoped to")
@click.option("--trait", "-t", "traits", multiple=True, callback=parse_pairs,
              help="Trait requirement as NAME=RAW, e.g. followers=gt:100 (repeatable)")
@click.option("--action", "-a", help="Action name")
@click.option("--verification-id", help="Correlation id")
@click.option("--domain", help="Domain override")
@click.option("--uri", help="URI override")
@click.option("--chain-id", type=int, help="Chain id override")
@click.option("--strict", is_flag=True, help="Reject operators that do not fit their values")
@click.option("--json", "as_json", is_flag=True, help="Print nonce and timestamps as JSON")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Output file (default: stdout)")
def build(
    address: str,
    provider: Optional[str],
    traits: Dict[str, str],
    action: Optional[str],
    verification_id: Optional[str],
    domain: Optional[str],
    uri: Optional[str],
    chain_id: Optional[int],
    strict: bool,
    as_json: bool,
    output: Optional[str],
) -> None:
    """Build a signable statement."""
    try:
        built = build_statement(
            address,
            provider,
            traits,
            action,
            verification_id,
            domain=domain,
            uri=uri,
            chain_id=chain_id,
            strict=strict,
        )
    except TraitVerifyError as e:
        raise click.ClickException(e.message) from e

    _write(json.dumps(built.to_dict(), indent=2) if as_json else built.message, output)


@cli.command()  # type: ignore[misc]
@click.option("--key-file", "-k", type=click.Path(exists=True, dir_okay=False),
              help="JWK file created by 'keygen'")
@click.option("--private-key", envvar="TRAIT_VERIFY_PRIVATE_KEY",
              help="Hex private key (or TRAIT_VERIFY_PRIVATE_KEY)")
@click.option("--provider", "-p", default="x", show_default=True, help="Provider the traits are scoped to")
@click.option("--trait", "-t", "traits", multiple=True, callback=parse_pairs,
              help="Trait requirement as NAME=RAW (repeatable)")
@click.option("--action", "-a", default=DEFAULT_ACTION, show_default=True, help="Action name")
@click.option("--verification-id", help="Correlation id")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Output file (default: stdout)")
def sign(
    key_file: Optional[str],
    private_key: Optional[str],
    provider: str,
    traits: Dict[str, str],
    action: str,
    verification_id: Optional[str],
    output: Optional[str],
) -> None:
    """Build a statement and sign it with a development key."""
    if key_file:
        key_pair = load_key(key_file)
    elif private_key:
        try:
            key_pair = DevKeyPair.from_private_key(private_key)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--private-key") from e
    else:
        raise click.UsageError("Give --key-file or --private-key")

    try:
        signed = asyncio.run(
            generate_signature(
                key_pair=key_pair,
                provider=provider,
                traits=traits,
                action=action,
                verification_id=verification_id,
            )
        )
    except TraitVerifyError as e:
        raise click.ClickException(e.message) from e

    _write(json.dumps(signed.to_dict(), indent=2), output)


cli.add_command(parse)
cli.add_command(check)


if __name__ == "__main__":
    cli()
