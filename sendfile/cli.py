#!/usr/bin/env python3
"""
sendfile CLI

Send and receive single files over TCP.

Usage:
    sendfile r                              # Run a server on an OS-chosen port
    sendfile s FILENAME HOSTNAME PORT       # Send a file to a server
    sendfile --help                         # Print usage (exit code 2)

Anything else is a usage error (exit code 1).
"""

import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import click

from .config import load_config
from .console import reporter, setup_logging
from .errors import SendfileError
from .transfer import FileServer, send_file_sync

HELP_MESSAGE = """Send and receive files over a network.

Run with 'r' to start in server mode; the server prints the port it is
listening on. Run with 's FILENAME HOSTNAME PORT' to send a file to a
running server."""


def _show_help(ctx, param, value):
    """Print help to stderr and exit with code 2."""
    if not value or ctx.resilient_parsing:
        return
    click.echo(ctx.get_help(), err=True)
    ctx.exit(2)


def help_option(f):
    return click.option(
        '-h', '--help', is_flag=True, expose_value=False, is_eager=True,
        callback=_show_help, help='Show this message and exit.'
    )(f)


CONTEXT_SETTINGS = {'help_option_names': []}


@click.group(context_settings=CONTEXT_SETTINGS, invoke_without_command=True,
             help=HELP_MESSAGE)
@help_option
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--config', 'config_path', default=None,
              type=click.Path(dir_okay=False, path_type=Path),
              help='JSON config file')
@click.pass_context
def cli(ctx, verbose, config_path):
    config = load_config(config_path)
    setup_logging(config.log_level, verbose)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config

    if ctx.invoked_subcommand is None:
        raise click.UsageError("invalid command line arguments", ctx)


@cli.command('r', context_settings=CONTEXT_SETTINGS)
@help_option
@click.option('--port', type=click.IntRange(0, 65535), default=None,
              help='Port to listen on (0 = let the OS choose)')
@click.option('--output-dir', default=None,
              type=click.Path(file_okay=False, path_type=Path),
              help='Directory received files are written to')
@click.pass_context
def receive(ctx, port, output_dir):
    """Run the server."""
    config = ctx.obj['config']
    if port is not None:
        config.port = port
    if output_dir is not None:
        config.output_dir = output_dir

    try:
        asyncio.run(FileServer(config, reporter).run())
    except KeyboardInterrupt:
        reporter.info("server stopped")
    except SendfileError as e:
        reporter.error(str(e))
        ctx.exit(1)


@cli.command('s', context_settings=CONTEXT_SETTINGS)
@help_option
@click.argument('filename', type=click.Path(path_type=Path))
@click.argument('hostname')
@click.argument('port', type=click.IntRange(1, 65535))
@click.option('--name', default=None,
              help='Name to store the file under (default: its basename)')
@click.pass_context
def send(ctx, filename, hostname, port, name):
    """Send FILENAME to the server at HOSTNAME:PORT."""
    config = ctx.obj['config']

    try:
        result = send_file_sync(filename, hostname, port, name=name, config=config)
    except SendfileError as e:
        reporter.error(str(e))
        ctx.exit(1)

    reporter.info(
        f"sent {result.name} ({result.payload_length} bytes) "
        f"to {result.address}:{result.port}"
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI and return the process exit code."""
    try:
        rv = cli.main(args=argv, prog_name='sendfile', standalone_mode=False)
    except click.ClickException as e:
        e.show()
        return 1
    except click.Abort:
        reporter.error("Aborted!")
        return 1
    return rv if isinstance(rv, int) else 0


def run():
    sys.exit(main())


if __name__ == '__main__':
    run()
