"""
Identifier quoting for statements built from catalog names.

Table and column names reach SQL text through quote_identifier only; every
value travels as a PyMySQL query parameter. PyMySQL %-formats statement text
that is executed with parameters, so names inside such text are quoted with
escape_percent=True, which doubles any "%" they contain.
"""

# MySQL limits identifiers to 64 characters
MAX_IDENTIFIER_LENGTH = 64

# (predicate, reason) pairs checked in order; the first match rejects
_IDENTIFIER_RULES = (
    (lambda name: len(name) > MAX_IDENTIFIER_LENGTH,
     f"Identifiers are limited to {MAX_IDENTIFIER_LENGTH} characters."),
    (lambda name: "\x00" in name, "NUL characters are not allowed."),
    (lambda name: name != name.rstrip(), "Trailing spaces are not allowed."),
)


def validate_identifier(identifier: str) -> None:
    """
    Reject names MySQL would mishandle even when quoted

    Raises:
        ValueError: Empty or non-string name, or one breaking a rule above
    """
    if not isinstance(identifier, str) or not identifier:
        raise ValueError("SQL identifier cannot be empty")

    for broken, reason in _IDENTIFIER_RULES:
        if broken(identifier):
            raise ValueError(f"Invalid SQL identifier: {identifier!r}. {reason}")


def quote_identifier(identifier: str, escape_percent: bool = False) -> str:
    """
    Validate, then wrap in backticks with embedded backticks doubled

    Args:
        identifier: Table or column name
        escape_percent: Also double "%" for text PyMySQL formats with parameters
    """
    validate_identifier(identifier)
    quoted = "`{}`".format(identifier.replace("`", "``"))
    if escape_percent:
        quoted = quoted.replace("%", "%%")
    return quoted


def quote_identifiers(identifiers: list[str], escape_percent: bool = False) -> str:
    return ", ".join(quote_identifier(name, escape_percent) for name in identifiers)


def validate_integer_param(value: int, param_name: str, min_value: int = 0) -> None:
    """
    Check a LIMIT/OFFSET style parameter

    Raises:
        ValueError: For bools, non-integers and values below min_value
    """
    if type(value) is not int:
        raise ValueError(f"Invalid {param_name}: {value!r}. Must be an integer.")
    if value < min_value:
        raise ValueError(f"Invalid {param_name}: {value}. Must be >= {min_value}.")
