from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional, Sequence

from openpyxl import Workbook, load_workbook

from office_bu.logging_setup import get_logger
from office_bu.sheets.columns import COLUMNS

logger = get_logger(__name__)

DEFAULT_SHEET_NAME = "Transactions"


class SheetNotFoundError(Exception):
    """Raised when the expected tab doesn't exist in the spreadsheet."""
    pass


class Sheet(ABC):
    """
    A row-oriented sheet: row 1 is the header, data starts at row 2.

    Row and column numbers are 1-based, like spreadsheet coordinates.
    Deleting a row shifts every row below it up by one.
    """

    name: str = DEFAULT_SHEET_NAME

    @abstractmethod
    def get_values(self) -> List[List[Any]]:
        """All rows including the header"""
        pass

    @abstractmethod
    def append_rows(self, rows: Sequence[Sequence[Any]]) -> None:
        """Write rows in one batch starting right after the last row"""
        pass

    @abstractmethod
    def delete_row(self, row_number: int) -> None:
        pass

    @abstractmethod
    def set_value(self, row_number: int, column_number: int, value: Any) -> None:
        pass

    @abstractmethod
    def clear_data_rows(self) -> None:
        """Remove every row below the header"""
        pass

    def append_row(self, row: Sequence[Any]) -> None:
        self.append_rows([row])

    def last_row(self) -> int:
        return len(self.get_values())

    def save(self) -> None:
        """Persist pending changes; in-memory sheets have nothing to do"""
        pass


class InMemorySheet(Sheet):
    """List-backed sheet, used for tests and dry runs"""

    def __init__(self, rows: Optional[Sequence[Sequence[Any]]] = None, name: str = DEFAULT_SHEET_NAME):
        self.name = name
        if rows is None:
            rows = [list(COLUMNS)]
        self.rows: List[List[Any]] = [list(r) for r in rows]

    def get_values(self) -> List[List[Any]]:
        return [list(r) for r in self.rows]

    def append_rows(self, rows: Sequence[Sequence[Any]]) -> None:
        self.rows.extend(list(r) for r in rows)

    def delete_row(self, row_number: int) -> None:
        del self.rows[row_number - 1]

    def set_value(self, row_number: int, column_number: int, value: Any) -> None:
        row = self.rows[row_number - 1]
        while len(row) < column_number:
            row.append("")
        row[column_number - 1] = value

    def clear_data_rows(self) -> None:
        del self.rows[1:]


class WorkbookSheet(Sheet):
    """
    One tab of an .xlsx workbook, opened with openpyxl.

    Changes stay in memory until save() writes the whole workbook back.
    """

    def __init__(self, path: Path | str, sheet_name: str = DEFAULT_SHEET_NAME):
        self.path = Path(path)
        self.name = sheet_name
        self._workbook = load_workbook(self.path)
        if sheet_name not in self._workbook.sheetnames:
            raise SheetNotFoundError(f"Sheet '{sheet_name}' not found.")
        self._worksheet = self._workbook[sheet_name]

    @staticmethod
    def create(path: Path | str, sheet_name: str = DEFAULT_SHEET_NAME) -> "WorkbookSheet":
        """Create a workbook with a single tab holding the header row"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = sheet_name
        worksheet.append(list(COLUMNS))
        workbook.save(path)
        logger.info("Created workbook %s with tab %s", path, sheet_name)
        return WorkbookSheet(path, sheet_name)

    def get_values(self) -> List[List[Any]]:
        rows = [list(r) for r in self._worksheet.iter_rows(values_only=True)]
        # openpyxl reports one empty row for a blank sheet
        if len(rows) == 1 and all(cell is None for cell in rows[0]):
            return []
        return rows

    def last_row(self) -> int:
        return len(self.get_values())

    def append_rows(self, rows: Sequence[Sequence[Any]]) -> None:
        start = self.last_row() + 1
        for offset, row in enumerate(rows):
            for column, value in enumerate(row, start=1):
                self._worksheet.cell(row=start + offset, column=column, value=value)

    def delete_row(self, row_number: int) -> None:
        self._worksheet.delete_rows(row_number, 1)

    def set_value(self, row_number: int, column_number: int, value: Any) -> None:
        self._worksheet.cell(row=row_number, column=column_number, value=value)

    def clear_data_rows(self) -> None:
        last = self._worksheet.max_row
        if last > 1:
            self._worksheet.delete_rows(2, last - 1)

    def save(self) -> None:
        self._workbook.save(self.path)
