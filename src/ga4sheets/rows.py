"""
Turning a grid of cells (a sheet tab, a CSV file) into records.  Row 0 is
the header row.  Header matching ignores case and extra whitespace so
'Property ID', 'property id' and ' Property  ID ' all land on the same column.
"""
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
import csv

from .errors import MissingHeaderError

def normalize_header(value) -> str:
    """trim, collapse internal whitespace, lowercase"""
    return " ".join(str(value if value is not None else "").split()).lower()

def normalize_cell(value) -> str:
    """
    Cells come back as strings from a FORMATTED read but a CSV or an
    UNFORMATTED read can give numbers, and a property id of 123.0 is no use.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


@dataclass(frozen=True)
class Column():
    """
    A recognized input column.  header is what gets reported when it's
    missing, aliases are other spellings seen in the wild.  parse turns the
    trimmed cell text into the typed field value and raises ValidationError
    when it can't.
    """
    header: str
    field: str
    required: bool = False
    aliases: tuple[str,...] = ()
    parse: Callable[[str], object] = str

    @property
    def names(self) -> list[str]:
        return [normalize_header(n) for n in (self.header, *self.aliases)]


class HeaderIndex(Mapping):
    """normalized header -> column index, first occurrence wins"""
    def __init__(self, header_row: Sequence) -> None:
        self._index = {}
        for i, h in enumerate(header_row):
            n = normalize_header(h)
            if n and n not in self._index:
                self._index[n] = i

    def __getitem__(self, key: str) -> int:
        return self._index[normalize_header(key)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{self._index}"

    def find(self, column: Column) -> int|None:
        for n in column.names:
            if n in self._index:
                return self._index[n]
        return None

    def require(self, columns: Iterable[Column]) -> None:
        missing = [c.header for c in columns if c.required and self.find(c) is None]
        if missing:
            raise MissingHeaderError(missing)


@dataclass
class InputRecord():
    """
    One data row.  row_index is the 1-based sheet row so it can be matched
    back to the input tab (the header is row 1).
    """
    row_index: int
    values: dict[str,str] = field(default_factory=dict)
    blank: bool = False

    def get(self, name: str, default: str = "") -> str:
        return self.values.get(name, default) or default


@dataclass
class RowTable():
    header_index: HeaderIndex
    rows: list[list] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def records(self, columns: Sequence[Column]) -> Iterator[InputRecord]:
        """
        Absent optional columns read as empty.  A row where every required
        cell is empty is blank, the caller drops those without an outcome.
        """
        positions = [(c, self.header_index.find(c)) for c in columns]
        for offset, row in enumerate(self.rows):
            values = {}
            for c, pos in positions:
                cell = row[pos] if pos is not None and pos < len(row) else None
                values[c.field] = normalize_cell(cell)
            required = [c.field for c in columns if c.required]
            blank = all(not values[f] for f in required) if required else not any(values.values())
            yield InputRecord(offset + 2, values, blank)


def normalize_rows(grid: Sequence[Sequence], columns: Sequence[Column]) -> RowTable:
    """
    Map the header row and check every required column is there.  Missing
    headers are fatal for the whole batch, nothing has been processed yet
    when this raises.
    """
    if not grid:
        raise MissingHeaderError([c.header for c in columns if c.required])
    header_index = HeaderIndex(grid[0])
    header_index.require(columns)
    return RowTable(header_index, [list(r) for r in grid[1:]])


def read_csv_grid(path: Path|str) -> list[list[str]]:
    with open(path, newline="", encoding="utf-8-sig") as f:
        return [row for row in csv.reader(f)]
