from __future__ import annotations

import logging

import click

from snapdiff import __version__
from snapdiff.commands.compare import compare_cmd


def _configure_logging(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Send debug logs from the snapdiff package to stderr."""
    if not value:
        return
    pkg_logger = logging.getLogger("snapdiff")
    if pkg_logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(logging.DEBUG)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="snapdiff")
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=_configure_logging,
    help="Log comparison details to stderr.",
)
def main() -> None:
    """snapdiff: pixel comparison of image snapshots."""


main.add_command(compare_cmd, name="compare")


if __name__ == "__main__":
    main()
