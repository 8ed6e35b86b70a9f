"""Command line interface: pgcrtauth init | generate | inspect | version."""

from pathlib import Path
from typing import NoReturn, Optional

import typer
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from shared.config import settings
from shared.logging import setup_logging
from shared.metrics import setup_metrics
from shared.tracing import setup_tracing

from pgcrtauth.ca.errors import CrtAuthError, InvalidKeySize
from pgcrtauth.ca.template import Template
from pgcrtauth.services.issuance import IssuanceService

KEY_SIZE_HELP = "One of P224, P256, P384, P521, 1024, 2048, 3072, 4096"

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Generates self-signed certificates for standalone and clustered PostgreSQL servers.",
)


def _fail(message: str) -> NoReturn:
    typer.echo(message, err=True)
    raise typer.Exit(code=1)


@app.command("init")
def init_command(
    ca_dir: Path = typer.Option(
        ...,
        "--ca-dir",
        "-c",
        help="The directory in which the generated root files should be stored",
    ),
    organization: str = typer.Option(
        "", "--organization", "-O", help="Subject's organization name (default empty)"
    ),
    common_name: str = typer.Option(
        "", "--common-name", "-C", help="Subject's common name (default empty)"
    ),
    valid_for: int = typer.Option(
        settings.DEFAULT_VALID_FOR_DAYS,
        "--valid-for",
        "-V",
        help="How many days the certificate will be valid for from now on",
    ),
    key_size: str = typer.Option(settings.DEFAULT_KEY_SIZE, "--key-size", "-K", help=KEY_SIZE_HELP),
) -> None:
    """Creates a new certificate authority (root.crt and root.key files).

    Existing root files in the --ca-dir directory will be overwritten. The
    key size selects the algorithm: P224, P256, P384 and P521 are elliptic
    curves, 1024, 2048, 3072 and 4096 are RSA modulus lengths.
    """
    typer.echo(f"Creating a new certificate authority at {ca_dir}")

    try:
        template = Template(
            organization=organization,
            common_name=common_name,
            valid_for_days=valid_for,
            key_size=key_size,
        )
        IssuanceService().create_authority(template, ca_dir)
    except InvalidKeySize as e:
        _fail(f"Bad key size: {e}")
    except CrtAuthError as e:
        _fail(f"Could not create certification authority: {e}")

    typer.echo("Successfully created certification authority.")
    typer.echo("Done")


@app.command("generate")
def generate_command(
    hostnames: str = typer.Option(
        ..., "--hostnames", "-H", help="Comma separated IP addresses and hostnames of the server"
    ),
    organization: str = typer.Option(
        "", "--organization", "-O", help="Subject's organization name (default empty)"
    ),
    common_name: str = typer.Option(
        "", "--common-name", "-C", help="Subject's common name (default empty)"
    ),
    valid_for: int = typer.Option(
        settings.DEFAULT_VALID_FOR_DAYS,
        "--valid-for",
        "-V",
        help="How many days the certificate will be valid for from now on",
    ),
    key_size: str = typer.Option(settings.DEFAULT_KEY_SIZE, "--key-size", "-K", help=KEY_SIZE_HELP),
    out_dir: Path = typer.Option(
        ...,
        "--out-dir",
        "-o",
        help="Directory where generated files (server.crt/server.key) should be stored",
    ),
    ca_dir: Optional[Path] = typer.Option(
        None,
        "--ca-dir",
        "-c",
        help="Directory containing root.crt and root.key files (created with 'pgcrtauth init')",
    ),
    self_signed: bool = typer.Option(
        False, "--self-signed", "-s", help="Create a self-signed certificate, without using a CA"
    ),
) -> None:
    """Generates a server certificate pair for PostgreSQL (server.crt and server.key).

    The pair is signed by the CA in --ca-dir, or self-signed with
    --self-signed.
    """
    if ca_dir is None and not self_signed:
        _fail("At least one of --ca-dir or --self-signed arguments is required")

    if self_signed:
        typer.echo("Creating a self-signed certificate")
    else:
        typer.echo(f"Creating a certificate signed by the CA at {ca_dir}")

    try:
        template = Template.with_hosts(
            hostnames,
            organization=organization,
            common_name=common_name,
            valid_for_days=valid_for,
            key_size=key_size,
        )
        issued = IssuanceService().issue_server_pair(
            template, out_dir, ca_dir=ca_dir, self_signed=self_signed
        )
    except InvalidKeySize as e:
        _fail(f"Bad key size: {e}")
    except CrtAuthError as e:
        _fail(f"Could not create server pair: {e}")

    typer.echo("Successfully created server pair at:")
    typer.echo(f"- Certificate: {issued.cert_path}")
    typer.echo(f"- Private key: {issued.key_path}")
    typer.echo("Done")


@app.command("inspect")
def inspect_command(
    path: Path = typer.Argument(..., help="PEM file holding the certificate"),
) -> None:
    """Prints the main fields of a PEM certificate."""
    try:
        info = IssuanceService().inspect_certificate(path)
    except CrtAuthError as e:
        _fail(f"Could not read certificate: {e}")

    typer.echo(f"Subject:      {info.subject}")
    typer.echo(f"Issuer:       {info.issuer}")
    typer.echo(f"Serial:       {info.serial_number}")
    typer.echo(f"Not before:   {info.not_before.isoformat()}")
    typer.echo(f"Not after:    {info.not_after.isoformat()}")
    typer.echo(f"CA:           {'yes' if info.is_ca else 'no'}")
    typer.echo(f"Self-signed:  {'yes' if info.self_signed else 'no'}")
    typer.echo(f"DNS names:    {', '.join(info.dns_names)}")
    typer.echo(f"IP addresses: {', '.join(info.ip_addresses)}")
    typer.echo(f"Key usage:    {', '.join(info.key_usage)}")
    typer.echo(f"Algorithm:    {info.algorithm}")
    typer.echo(f"SHA-256:      {info.fingerprint}")


@app.command("version")
def version_command() -> None:
    """Print app name and version."""
    typer.echo(f"{settings.APP_NAME} v{settings.APP_VERSION}")


def main() -> None:
    """Console script entry point."""
    setup_logging()
    setup_tracing(settings.APP_NAME)
    meter_provider = setup_metrics(settings.APP_NAME)
    LoggingInstrumentor().instrument(set_logging_format=False)

    try:
        app()
    finally:
        meter_provider.shutdown()


if __name__ == "__main__":
    main()
