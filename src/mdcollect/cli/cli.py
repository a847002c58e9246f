"""CLI entrypoint: Typer app definition and command registration"""

import logging
from typing import Annotated

import typer

from mdcollect.cli.commands import build_cmd, check_cmd, init_cmd, list_cmd, show_cmd


app = typer.Typer(name="mdcollect", no_args_is_help=True, help="Markdown content collection pipeline")


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log per-document progress")] = False,
    ):
    """Markdown content collection pipeline"""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


app.command(name="build")(build_cmd)
app.command(name="check")(check_cmd)
app.command(name="list")(list_cmd)
app.command(name="show")(show_cmd)
app.command(name="init")(init_cmd)
