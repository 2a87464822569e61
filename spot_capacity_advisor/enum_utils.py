"""Helpers for string enums whose members carry their own docstrings.

Every public enum in :mod:`spot_capacity_advisor.interface` is a ``StrEnum``
decorated with :func:`enum_docstrings` so that ``help()``, IDE tooltips and
the pydantic JSON schema all describe each member, not only the class.
"""

import ast
import inspect
import sys
import textwrap
from enum import Enum
from typing import Any
from typing import cast
from typing import TypeVar

from pydantic.json_schema import JsonSchemaValue
from pydantic_core import CoreSchema


__all__ = ["StrEnum", "enum_docstrings"]

if sys.version_info >= (3, 11):
    from enum import StrEnum as StrEnum  # pylint: disable=useless-import-alias
else:

    class StrEnum(str, Enum):
        """Python 3.10 stand-in for :class:`enum.StrEnum`

        ``str(member)`` and ``f"{member}"`` both render the value, which is
        what the wire payloads and log lines expect.
        """

        def __new__(cls, value: str, *args: Any, **kwargs: Any) -> "StrEnum":
            if not isinstance(value, str):
                raise TypeError(f"{value!r} is not a string")
            member = str.__new__(cls, value)
            member._value_ = value
            return member

        def __str__(self) -> str:
            return str(self.value)

        def __format__(self, format_spec: str) -> str:
            return str(self.value).__format__(format_spec)


E = TypeVar("E", bound=Enum)


def _member_docstrings(enum: type[E]) -> dict[str, str]:
    """Maps member name -> the string literal directly below its assignment"""
    try:
        mod = ast.parse(textwrap.dedent(inspect.getsource(enum)))
    except (OSError, TypeError):
        return {}

    if not mod.body or not isinstance(mod.body[0], ast.ClassDef):
        return {}

    found: dict[str, str] = {}
    pending: str | None = None
    for node in mod.body[0].body:
        match node:
            case ast.Assign(targets=[ast.Name(id=name)]) if name in enum.__members__:
                pending = name
                continue
            case ast.Expr(value=ast.Constant(value=str() as doc)) if pending:
                found[pending] = doc
        pending = None
    return found


def enum_docstrings(enum: type[E]) -> type[E]:
    """Attach the PEP 257 style attribute docstrings of an enum to its members

    Example:
        @enum_docstrings
        class Color(StrEnum):
            \"\"\"Paint colors\"\"\"

            red = "RED"
            \"\"\"Warm\"\"\"

        Color.red.__doc__  # 'Warm'

    Members without a docstring keep inheriting the class docstring. When the
    source is unavailable (frozen or compiled modules) the enum is returned
    unchanged apart from the JSON schema hook.
    """
    for name, doc in _member_docstrings(enum).items():
        enum[name].__doc__ = doc

    def __get_pydantic_json_schema__(
        cls: type[E],
        core_schema: CoreSchema,
        handler: Any,
    ) -> JsonSchemaValue:
        json_schema = cast(JsonSchemaValue, handler(core_schema))
        json_schema["oneOf"] = [
            {
                "const": member.value,
                "title": member.name,
                "description": member.__doc__,
            }
            for member in cls
        ]
        return json_schema

    setattr(
        enum, "__get_pydantic_json_schema__", classmethod(__get_pydantic_json_schema__)
    )

    return enum
