from invoke import task


@task
def test(ctx):
    ctx.run("pytest --cov=dotr --cov-report=term-missing --cov-fail-under=80", echo=True)


@task
def validate(ctx):
    """validate"""
    ctx.run("pyflakes ./src", echo=True)
    ctx.run("pyflakes ./tests", echo=True)
    ctx.run("black --check --diff .", echo=True)

    ctx.run("pylint ./src", warn=True, echo=True)
    ctx.run("pylint ./tests", warn=True, echo=True)

    ctx.run("mypy ./src", echo=True)
    ctx.run("mypy ./tests", echo=True)


@task
def fmt(ctx):
    ctx.run("black .")


@task
def dry_run(ctx, dst="~"):
    """Show what linking the current directory would do"""
    ctx.run(f"dotr -v --dst-dir {dst} --dry-run link", echo=True, warn=True)
