"""
Utilities for interpolating Compose-style variables in manifest text.
"""
import re
from typing import Mapping

# $$ | ${VAR} | ${VAR:-x} | ${VAR-x} | ${VAR:+x} | ${VAR+x} | ${VAR:?x} | ${VAR?x} | $VAR
_PATTERN = re.compile(
    r"\$(?:(?P<escaped>\$)"
    r"|\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)(?:(?P<colon>:)?(?P<op>[-+?])(?P<arg>[^}]*))?\}"
    r"|(?P<named>[A-Za-z_][A-Za-z0-9_]*))"
)


class EnvironmentInterpolator:
    """
    Interpolates variables the way Docker Compose does.
    Unset variables without a default resolve to an empty string.
    """
    def __init__(self, context: Mapping[str, str]):
        """
        :param context: Variables available for substitution.
        """
        self.context = context

    def interpolate(self, template: str) -> str:
        """
        Interpolates variables in the template string.

        :param template: Text containing $VAR / ${VAR...} placeholders.
        :return: The interpolated text.
        :raises KeyError: For ${VAR:?message} on an unset variable.
        """
        return _PATTERN.sub(self._replace, template)

    def _replace(self, match: "re.Match[str]") -> str:
        if match.group("escaped"):
            return "$"

        name = match.group("braced") or match.group("named")
        op = match.group("op")
        arg = match.group("arg") or ""
        value = self.context.get(name)
        # With a colon, empty counts as unset
        is_set = bool(value) if match.group("colon") else value is not None

        if op == "-":
            return value if is_set else arg
        if op == "+":
            return arg if is_set else ""
        if op == "?":
            if not is_set:
                raise KeyError(f"Variable {name} is required: {arg or 'not set'}")
            return value

        return value or ""
