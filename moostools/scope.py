"""Table layout and cell formatting for a database scope view."""

from __future__ import annotations

from moostools.dbimage import DBImage
from moostools.messages import chomp, is_numeric

COLUMN_NAMES = ("Name", "Time", "Type", "Freq", "Source", "Community", "Value")
VALUE_COLUMN = 6

# Share of the table width given to every column but the last, in percent.
_COLUMN_PERCENT = (20, 10, 4, 6, 10, 10)


def cell_value(image: DBImage | None, row: int, column: int) -> str:
    """Text shown in the cell at ``row`` and ``column`` of the scope table.

    Empty when there is no image, no variable at that row, or no such column.
    """
    if image is None:
        return ""
    try:
        variable = image.get(row)
    except IndexError:
        return ""
    cells = (
        variable.name,
        variable.time_text(),
        variable.type_code(),
        variable.frequency,
        variable.source,
        variable.community,
        variable.value(),
    )
    if 0 <= column < len(cells):
        return cells[column]
    return ""


def escape_at(text: str) -> str:
    """Double every ``@`` that is followed by more text, so it is drawn literally.

    A trailing ``@`` separator with nothing after it is dropped.
    """
    escaped = []
    rest = text
    while rest:
        head, rest = chomp(rest, "@")
        escaped.append(head)
        if rest:
            escaped.append("@@")
    return "".join(escaped)


def column_widths(width: int) -> tuple[int, ...]:
    """Widths of the seven columns for a table ``width`` pixels wide.

    ``width`` is the widget width less any scrollbar; the value column takes
    whatever the others leave, absorbing rounding.
    """
    if width < 0:
        raise ValueError(f"width must not be negative, got {width}")
    usable = width - 1
    widths = [usable * percent // 100 for percent in _COLUMN_PERCENT]
    widths.append(usable - sum(widths) - 1)
    return tuple(widths)


def validate_poke(type_code: str, text: str) -> str | float | None:
    """Check a value typed in to write a variable of type ``type_code``.

    A string variable (``$``) takes text that does not look like a number and
    returns it; a numeric variable (``D``) takes a number and returns it as a
    float. Any other type code accepts the input but yields nothing to write.
    Raises ValueError when the text does not suit the type.
    """
    if type_code == "$":
        if not is_numeric(text) or not text:
            return text
        raise ValueError("must be string - this looks like a number")
    if type_code == "D":
        if is_numeric(text) and text:
            return float(text)
        raise ValueError("must be double - this looks like a string")
    return None