# filename : scripts.py
# created  : 06/23/2025


import logging
import os

import click

from cardauth.core.errors import AuthenticationFailed, CardAuthError

lg = logging.getLogger(__name__)


def _run(fn, *args, **kwargs):
    """Call an operation, turning library errors into click errors."""
    try:
        return fn(*args, **kwargs)
    except AuthenticationFailed:
        raise click.ClickException("Authentication failed") from None
    except CardAuthError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="TRACE level (show raw protocol lines).")
@click.option(
    "-c",
    "--config-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Configuration file (default: /etc/cardauth/cardauth.conf).",
)
@click.option(
    "-w",
    "--wait-timeout",
    type=click.IntRange(min=0),
    default=None,
    help="Seconds to wait for a card, 0 waits forever.",
)
@click.pass_context
def cardauth(ctx, verbose, config_file, wait_timeout):
    """Smartcard authentication administration."""
    from cardauth.app.config import DEFAULT_CONFIG_FILE, load_config
    from cardauth.core.assuan.logging import configure

    path = config_file or os.environ.get("CARDAUTH_CONFIG", DEFAULT_CONFIG_FILE)
    config = _run(load_config, path, missing_ok=config_file is None)
    if wait_timeout is not None:
        config.wait_timeout = wait_timeout

    configure(verbose=verbose or config.debug, log_file=config.log_file)
    ctx.obj = config


@cardauth.command()
@click.option("-a", "--account", default=None, help="Account to authenticate as.")
@click.pass_obj
def test(config, account):
    """Test authentication with the inserted card."""
    from cardauth.app import ctrl
    from cardauth.app.conv import Conversation

    account = _run(ctrl.test, config, Conversation(), account)
    click.echo(f"Account: {account}")
    click.echo("Authentication succeeded")


@cardauth.command()
@click.pass_obj
def dump(config):
    """Dump information from the inserted card."""
    from cardauth.app import ctrl

    click.echo(_run(ctrl.dump, config))


@cardauth.command("list-users")
@click.pass_obj
def list_users(config):
    """List card/account associations."""
    from cardauth.app import ctrl

    for serialno, account in _run(ctrl.list_users, config):
        click.echo(f"{serialno}\t{account}")


@cardauth.command("add-user")
@click.option("-s", "--serialno", required=True, help="Card serial number.")
@click.option("-a", "--account", required=True, help="Account name.")
@click.pass_obj
def add_user(config, serialno, account):
    """Associate a card with an account."""
    from cardauth.app import ctrl

    if not _run(ctrl.add_user, config, serialno, account):
        click.echo(f"{serialno} is already associated with {account}")


@cardauth.command("remove-user")
@click.option("-s", "--serialno", default=None, help="Card serial number.")
@click.option("-a", "--account", default=None, help="Account name.")
@click.pass_obj
def remove_user(config, serialno, account):
    """Remove card/account associations."""
    from cardauth.app import ctrl

    if serialno is None and account is None:
        raise click.UsageError("give --serialno, --account or both")
    removed = _run(ctrl.remove_user, config, serialno=serialno, account=account)
    if not removed:
        raise click.ClickException("no matching entry")


@cardauth.command("set-key")
@click.pass_obj
def set_key(config):
    """Read the authentication key from the card and store it."""
    from cardauth.app import ctrl

    serialno, path = _run(ctrl.set_key, config)
    click.echo(f"Key of card {serialno} written to {path}")


@cardauth.command("show-key")
@click.option("-s", "--serialno", default=None, help="Card serial number (default: inserted card).")
@click.pass_obj
def show_key(config, serialno):
    """Show the stored key of a card."""
    from cardauth.app import ctrl

    click.echo(_run(ctrl.show_key, config, serialno), nl=False)
