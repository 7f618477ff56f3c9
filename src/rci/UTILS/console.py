"""
Coloured status output for the provisioning stages.
"""
import click


class Console:
    """
    Prints tagged status lines. Errors go to stderr, everything else to stdout.
    """
    def __init__(self, color=None):
        """
        :param color: Force colours on or off; None lets click decide from the terminal.
        """
        self.color = color

    def status(self, message: str):
        self._tagged("INFO", "blue", message)

    def success(self, message: str):
        self._tagged("SUCCESS", "green", message)

    def warning(self, message: str):
        self._tagged("WARNING", "yellow", message)

    def error(self, message: str):
        self._tagged("ERROR", "red", message, err=True)

    def echo(self, message: str = ""):
        click.echo(message, color=self.color)

    def _tagged(self, tag: str, fg: str, message: str, err: bool = False):
        prefix = click.style(f"[{tag}]", fg=fg, bold=(tag != "INFO"))
        click.echo(f"{prefix} {message}", err=err, color=self.color)
