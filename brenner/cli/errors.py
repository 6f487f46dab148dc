"""CLI error handling: report failures on stderr and exit 1."""

from functools import wraps

import typer
from click.exceptions import Exit

from brenner.errors import ConfigError, MailError


def error_feedback(f):
    """Wrap a command so known failures print a one-line message instead of a traceback."""

    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except (SystemExit, Exit):
            raise
        except MailError as e:
            typer.echo(f"Mail error: {e}", err=True)
            raise typer.Exit(1) from e
        except ConfigError as e:
            typer.echo(f"Config error: {e}", err=True)
            raise typer.Exit(1) from e
        except (ValueError, KeyError, TypeError) as e:
            typer.echo(f"Invalid input: {e}", err=True)
            raise typer.Exit(1) from e
        except OSError as e:
            typer.echo(f"File error: {e}", err=True)
            raise typer.Exit(1) from e
        except Exception as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from e

    return wrapper
