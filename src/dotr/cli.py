from typing import Tuple

import click

from dotr import __version__
from dotr.config import Config, Mode
from dotr.engine import LinkEngine
from dotr.errors import DotrError
from dotr.log import configure_logging
from dotr.report import Action, Outcome, RunReport

QUIET_ACTIONS = (
    Action.ALREADY_LINKED,
    Action.DIR_EXISTS,
    Action.NOT_LINKED,
    Action.KEEP_DIR,
    Action.IGNORED,
)

STYLES = {
    Action.CREATE_LINK: ("+", "green"),
    Action.CREATE_DIR: ("+", "green"),
    Action.OVERWRITE: ("!", "magenta"),
    Action.REMOVE_LINK: ("-", "red"),
    Action.REMOVE_DIR: ("-", "red"),
    Action.CONFLICT: ("x", "yellow"),
    Action.REMOVE_LINK_SKIPPED: ("~", "yellow"),
    Action.BLOCKED: ("~", "yellow"),
    Action.ERROR: ("E", "red"),
}


class FatalConfigError(click.ClickException):
    exit_code = 2


def format_outcome(outcome: Outcome) -> str:
    """One line of terminal output for an outcome"""

    symbol, _ = STYLES.get(outcome.action, (" ", None))
    if outcome.failed:
        symbol = "E"
    line = f"{symbol} {outcome.action.value:<20} {outcome.target}"
    if outcome.failed and outcome.error_kind is not None:
        line += f"  [{outcome.error_kind.value}: {outcome.message}]"
    elif outcome.message:
        line += f"  ({outcome.message})"
    return line


def echo_report(report: RunReport, verbose: int = 0) -> None:
    for outcome in report:
        if outcome.action in QUIET_ACTIONS and outcome.success and verbose == 0:
            continue
        _, color = STYLES.get(outcome.action, (" ", None))
        click.secho(format_outcome(outcome), fg="red" if outcome.failed else color)

    title = "Summary (dry-run)" if report.dry_run else "Summary"
    click.secho(f"\n{title}", bold=True)
    counts = report.counts()
    width = max([len(i) for i in counts])
    for k, v in counts.items():
        click.echo(f"  {k.replace('_', ' '):<{width}}  {v}")

    overwrites = report.overwrites()
    if overwrites:
        click.secho("\nOverwritten", bold=True)
        for o in overwrites:
            click.secho(f"  {o.target}  ({o.message})", fg="red" if o.failed else None)


def _run(ctx: click.Context, mode: Mode) -> None:
    opts = ctx.obj
    try:
        config = Config.from_options(
            src_dir=opts["src_dir"],
            dst_dir=opts["dst_dir"],
            mode=mode,
            force=opts["force"],
            dry_run=opts["dry_run"],
            ignore=opts["ignore"],
        )
        report = LinkEngine(config).run()
    except DotrError as err:
        raise FatalConfigError(str(err)) from err

    echo_report(report, verbose=opts["verbose"])
    if not report.ok:
        ctx.exit(1)


@click.version_option(version=__version__)
@click.group()
@click.option("--src-dir", default=".", show_default=True, help="Root of the dotfile repository.")
@click.option("--dst-dir", required=True, help="Directory to create the links in, usually $HOME.")
@click.option("--dry-run", is_flag=True, help="Report what would happen without touching anything.")
@click.option("--force", is_flag=True, help="Replace existing files when linking.")
@click.option("--ignore", multiple=True, help="Relative path to skip, can be repeated.")
@click.option("-v", "--verbose", count=True, help="Increase logging verbosity.")
@click.pass_context
def cli(
    ctx: click.Context,
    src_dir: str,
    dst_dir: str,
    dry_run: bool,
    force: bool,
    ignore: Tuple[str, ...],
    verbose: int,
) -> None:
    """
    A very simple dotfile manager
    """
    configure_logging(verbose)
    ctx.obj = {
        "src_dir": src_dir,
        "dst_dir": dst_dir,
        "dry_run": dry_run,
        "force": force,
        "ignore": ignore,
        "verbose": verbose,
    }


@cli.command()
@click.pass_context
def link(ctx: click.Context) -> None:
    """
    Link every file in the repository into the destination
    """
    _run(ctx, Mode.LINK)


@cli.command()
@click.pass_context
def unlink(ctx: click.Context) -> None:
    """
    Remove links that point into the repository
    """
    _run(ctx, Mode.UNLINK)
