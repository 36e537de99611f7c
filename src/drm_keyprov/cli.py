from __future__ import annotations

import logging

import typer

from .config import ProvisioningConfig
from .errors import ProvisioningError
from .selector import create_decryption_key_source, create_encryption_key_source
from .sources.base import KeySource, TrackType
from .sources.fixed import FixedKeySource
from .sources.playready import PlayReadyKeySource
from .sources.widevine import WidevineKeySource

logger = logging.getLogger(__name__)

app = typer.Typer(help="Select and provision content protection key sources.")


def _configure_logging(verbose: bool, quiet: bool) -> None:
    log_level = logging.WARNING
    if verbose:
        log_level = logging.DEBUG
    elif not quiet:
        log_level = logging.INFO
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")


def _load_config(config_file: str, overrides: dict) -> ProvisioningConfig:
    if config_file:
        config = ProvisioningConfig.from_yaml(config_file)
    else:
        config = ProvisioningConfig.from_env()
    return config.merged(**overrides)


def describe_key_source(key_source: KeySource) -> str:
    """One-line human readable summary of a key source."""
    if isinstance(key_source, WidevineKeySource):
        signer = key_source.signer.signer_name if key_source.signer else "none"
        return f"Widevine key source: server={key_source.server_url} signer={signer}"
    if isinstance(key_source, FixedKeySource):
        return f"Fixed key source: key_id={key_source.encryption_key.key_id.hex()}"
    if isinstance(key_source, PlayReadyKeySource):
        key_id = key_source.get_key(TrackType.SD).key_id.hex()
        return f"PlayReady key source: key_id={key_id}"
    return type(key_source).__name__


def _run(selector, label: str, config: ProvisioningConfig) -> None:
    try:
        key_source = selector(config)
    except ProvisioningError as e:
        logger.error("Failed to create %s key source: %s", label, e)
        raise typer.Exit(code=1)
    if key_source is None:
        typer.echo(f"No {label} requested.")
        return
    typer.echo(describe_key_source(key_source))


@app.command("encryption")
def encryption(
    config_file: str = typer.Option("", "-c", "--config", help="YAML file with provisioning options"),
    content_id: str | None = typer.Option(None, "--content-id", help="Content id as a hex string"),
    policy: str | None = typer.Option(None, "--policy", help="License policy name"),
    key_server_url: str | None = typer.Option(None, "--key-server-url", help="Widevine license server URL"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Only log warnings and errors"),
):
    """Create the encryption key source and fetch its keys.

    Options are read from --config, or from DRM_KEYPROV_* environment
    variables (and a .env file) when no config file is given.
    """
    _configure_logging(verbose, quiet)
    try:
        config = _load_config(config_file, {
            "content_id": content_id,
            "policy": policy,
            "key_server_url": key_server_url,
        })
    except ProvisioningError as e:
        logger.error("%s", e)
        raise typer.Exit(code=1)
    _run(create_encryption_key_source, "encryption", config)


@app.command("decryption")
def decryption(
    config_file: str = typer.Option("", "-c", "--config", help="YAML file with provisioning options"),
    key_server_url: str | None = typer.Option(None, "--key-server-url", help="Widevine license server URL"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Only log warnings and errors"),
):
    """Create the decryption key source. Keys are fetched when first used."""
    _configure_logging(verbose, quiet)
    try:
        config = _load_config(config_file, {"key_server_url": key_server_url})
    except ProvisioningError as e:
        logger.error("%s", e)
        raise typer.Exit(code=1)
    _run(create_decryption_key_source, "decryption", config)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
