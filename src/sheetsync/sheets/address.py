"""Cell and range address helpers.

Addresses follow A1 notation, optionally qualified with a sheet name
(``incoming!B7`` or ``'My Sheet'!B7``). Nothing here assumes a fixed
column-letter width.
"""

from ..errors import MalformedAddressError


def col_letter_to_index(col: str) -> int:
    """Convert column letter(s) to 0-based index. A=0, B=1, ..., Z=25, AA=26, etc."""
    result = 0
    for char in col.upper():
        result = result * 26 + (ord(char) - ord("A") + 1)
    return result - 1


def index_to_col_letter(index: int) -> str:
    """Convert 0-based index to column letter(s)."""
    result = ""
    index += 1
    while index > 0:
        index -= 1
        result = chr(ord("A") + (index % 26)) + result
        index //= 26
    return result


def strip_sheet(address: str) -> str:
    """Drop the sheet qualifier and absolute markers from an address."""
    if "!" in address:
        address = address.rsplit("!", 1)[1]
    return address.replace("$", "")


def row_ordinal(cell_address: str) -> int:
    """Return the row number of a cell address ("C14" -> 14)."""
    cell = strip_sheet(cell_address)
    for position, char in enumerate(cell):
        if char.isdecimal():
            suffix = cell[position:]
            if not suffix.isdecimal():
                raise MalformedAddressError(cell_address)
            return int(suffix)
    raise MalformedAddressError(cell_address)


def column_letters(cell_address: str) -> str:
    """Return the column component of a cell address ("AB23" -> "AB")."""
    cell = strip_sheet(cell_address)
    letters = ""
    for char in cell:
        if char.isdigit():
            break
        letters += char
    if not letters or not letters.isalpha():
        raise MalformedAddressError(cell_address)
    return letters.upper()


def split_range(range_address: str) -> list[str]:
    """Split ``Sheet!A1:C1`` into its corner cells, without the sheet qualifier."""
    return [part for part in strip_sheet(range_address).split(":") if part]


def row_address(first_col: int, last_col: int, row: int, sheet_name: str = "") -> list[str]:
    """Build the cell addresses of one row between two 0-based columns."""
    prefix = f"{quote_sheet(sheet_name)}!" if sheet_name else ""
    return [
        f"{prefix}{index_to_col_letter(col)}{row}" for col in range(first_col, last_col + 1)
    ]


def quote_sheet(sheet_name: str) -> str:
    """Quote a sheet name for use in a range address when it needs it."""
    if sheet_name.isalnum() or sheet_name.replace("_", "").isalnum():
        return sheet_name
    escaped = sheet_name.replace("'", "''")
    return f"'{escaped}'"
