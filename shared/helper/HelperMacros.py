"""{{macro}} substitution for message text and injection templates."""

import re

_MACRO = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def substitute_params(text: str, variables: dict[str, str | None]) -> str:
    """Replace {{name}} macros (case-insensitive) with their values.

    Unknown macros and macros whose value is None are left untouched.

    Args:
        text (str): Text containing macros.
        variables (dict[str, str | None]): Macro values keyed by lowercase name.

    Returns:
        str: The substituted text.
    """
    if not text or "{{" not in text:
        return text
    lookup = {key.lower(): value for key, value in variables.items()}

    def _replace(match: re.Match) -> str:
        value = lookup.get(match.group(1).lower())
        return match.group(0) if value is None else str(value)

    return _MACRO.sub(_replace, text)
