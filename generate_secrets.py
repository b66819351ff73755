#!/usr/bin/env python3
"""
Generate the signing keys the Clout application reads from its environment

Prints SECRET_KEY and WTF_CSRF_SECRET_KEY as .env lines, or writes them into
an existing .env file with --env-file, leaving its other settings alone.
"""

import secrets
from pathlib import Path

import click
from dotenv import dotenv_values, set_key

SECRET_KEYS = ("SECRET_KEY", "WTF_CSRF_SECRET_KEY")

# Value shipped in .env.example
PLACEHOLDER = "change-me"


def generate_secrets():
    """Fresh random values for every signing key"""
    return {key: secrets.token_urlsafe(32) for key in SECRET_KEYS}


def keys_already_set(env_file):
    """Signing keys in env_file that hold a real value"""
    current = dotenv_values(env_file)
    return [key for key in SECRET_KEYS if current.get(key) not in (None, "", PLACEHOLDER)]


@click.command()
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False),
    help="Write the keys into this .env file instead of printing them",
)
@click.option("--force", is_flag=True, help="Replace keys that are already set")
def main(env_file, force):
    """Generate SECRET_KEY and WTF_CSRF_SECRET_KEY"""
    values = generate_secrets()

    if env_file is None:
        for key, value in values.items():
            click.echo(f"{key}={value}")
        return

    path = Path(env_file)
    if path.exists() and not force:
        existing = keys_already_set(path)
        if existing:
            click.echo(f"❌ {', '.join(existing)} already set in {path}, use --force to rotate")
            raise SystemExit(1)

    path.touch()
    for key, value in values.items():
        set_key(path, key, value, quote_mode="never")

    click.echo(f"✅ Wrote {', '.join(SECRET_KEYS)} to {path}")
    click.echo("⚠️  Rotating SECRET_KEY logs everyone out and invalidates issued CSRF tokens")


if __name__ == "__main__":
    main()
