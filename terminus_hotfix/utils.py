"Various utilities"

import click


class Color:
    "Colors for the console"
    @staticmethod
    def red(text):
        "red"
        return f"\033[31m{text}\033[0m"
    @staticmethod
    def green(text):
        "green"
        return f"\033[32m{text}\033[0m"
    @staticmethod
    def blue(text):
        "blue"
        return f"\033[34m{text}\033[0m"
    @staticmethod
    def bold(text):
        "bold"
        return f"\033[1m{text}\033[0m"


def notice(message):
    "Writes an operator notice on stderr"
    click.echo(f"{Color.blue('[notice]')} {message}", err=True)


def warning(message):
    "Writes a warning on stderr"
    click.echo(Color.red(f"[warning] {message}"), err=True)


def as_bool(value):
    """Returns the boolean for value.

    The remote API encodes some booleans as strings ("true"/"false").
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return bool(value)
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')
