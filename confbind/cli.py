# confbind/cli.py

import json
import click

from .env import Replacer
from .exceptions import ConfbindError
from .loader import Decoder


def _split_pair(pair: str, option: str):
    if "=" not in pair:
        raise click.BadParameter(f"expected OLD=NEW, got {pair!r}", param_hint=option)
    left, right = pair.split("=", 1)
    return left.strip(), right.strip()


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-n", "--name", "config_name", default="application", show_default=True,
              help="Config file name without extension")
@click.option("-t", "--type", "config_type", default="yaml", show_default=True,
              type=click.Choice(["yaml", "yml", "toml", "json"]), help="Config file format")
@click.option("-p", "--path", "config_paths", multiple=True,
              help="Directory to search (repeatable, defaults to .)")
@click.option("--auto-env", is_flag=True, help="Let env vars named after keys override values")
@click.option("--replace", "replacements", multiple=True,
              help="OLD=NEW substitution for automatic env names (repeatable)")
@click.option("--bind", "bindings", multiple=True,
              help="KEY=VAR explicit env binding (repeatable)")
@click.option("--dotenv", is_flag=True, help="Load a .env file first")
@click.pass_context
def cli(ctx, config_name, config_type, config_paths, auto_env, replacements, bindings, dotenv):
    """
    confbind CLI: inspect the effective configuration.

    Loads NAME.TYPE from the search paths, then run a subcommand:
      • get       KEY
      • dump
      • env-name  KEY
    """
    decoder = Decoder(load_dotenv_file=dotenv)
    decoder.set_config_name(config_name)
    decoder.set_config_type(config_type)
    for path in config_paths or (".",):
        decoder.add_config_path(path)

    if replacements:
        pairs = []
        for pair in replacements:
            pairs.extend(_split_pair(pair, "--replace"))
        decoder.set_env_key_replacer(Replacer(*pairs))
    if auto_env:
        decoder.automatic_env()
    for pair in bindings:
        key, var = _split_pair(pair, "--bind")
        decoder.bind_env(key, var)

    try:
        decoder.read_in_config()
    except ConfbindError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        ctx.exit(1)

    ctx.obj = {"decoder": decoder}


@cli.command()
@click.argument("key")
@click.pass_context
def get(ctx, key):
    """Print the effective value of KEY (dot-notation) as JSON."""
    missing = object()
    val = ctx.obj["decoder"].get(key, missing)
    if val is missing:
        click.secho(f"Key not found: {key}", fg="yellow", err=True)
        ctx.exit(1)
    click.echo(json.dumps(val, indent=2, default=str))


@cli.command()
@click.pass_context
def dump(ctx):
    """Pretty-print the normalized config document as JSON."""
    click.echo(json.dumps(ctx.obj["decoder"].document, indent=2, default=str))


@cli.command("env-name")
@click.argument("key")
@click.pass_context
def env_name(ctx, key):
    """Print the environment variable consulted for KEY."""
    name = ctx.obj["decoder"].resolver.env_name(key)
    if name is None:
        click.secho(f"No environment variable maps to {key}", fg="yellow", err=True)
        ctx.exit(1)
    click.echo(name)
