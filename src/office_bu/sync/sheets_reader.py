"""Read path of the sheet sync: pull every row through the Sheets API."""
import json
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, List, Optional

from office_bu.domain.models import Transaction
from office_bu.logging_setup import get_logger
from office_bu.sheets.columns import coerce_id, column_index, row_to_transaction
from office_bu.sync.errors import SyncError

logger = get_logger(__name__)

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"


def parse_rows(values: List[List[Any]]) -> List[Transaction]:
    """
    Turn a values range into transactions.

    Row 0 is the header and only locates columns. Rows without a numeric id
    are dropped silently (blank rows, notes). Rows with a numeric id are kept
    with defaults for blank cells, unless their type is not a known category,
    which drops them with a warning.
    """
    if not values:
        return []

    index = column_index(values[0])
    transactions = []
    for position, row in enumerate(values[1:], start=2):
        try:
            transactions.append(row_to_transaction(row, index))
        except (KeyError, TypeError, ValueError) as e:
            if index["id"] < len(row) and coerce_id(row[index["id"]]) is not None:
                logger.warning("Skipping sheet row %d: %s", position, e)
    return transactions


class SheetsReader:
    """
    Fetches the transaction range of a spreadsheet tab.

    Authenticates with an API key (sheet shared by link) and, when given,
    an OAuth access token.
    """

    def __init__(
        self,
        spreadsheet_id: str,
        api_key: Optional[str] = None,
        access_token: Optional[str] = None,
        sheet_name: str = "Transactions",
        timeout: float = 15,
    ):
        if not spreadsheet_id:
            raise ValueError("A spreadsheet id is required to read from Google Sheets")
        self.spreadsheet_id = spreadsheet_id
        self.api_key = api_key
        self.access_token = access_token
        self.sheet_name = sheet_name
        self.timeout = timeout

    @property
    def range(self) -> str:
        return f"{self.sheet_name}!A:H"

    def _url(self) -> str:
        url = (
            f"{SHEETS_API_URL}/{urllib.parse.quote(self.spreadsheet_id, safe='')}"
            f"/values/{urllib.parse.quote(self.range, safe='')}"
        )
        if self.api_key:
            url += "?" + urllib.parse.urlencode({"key": self.api_key})
        return url

    def fetch_values(self) -> List[List[Any]]:
        """
        Raw 2-D cell values including the header row.

        Raises:
            SyncError: On HTTP, auth, network or response-shape failure
        """
        req = urllib.request.Request(self._url(), method="GET")
        if self.access_token:
            req.add_header("Authorization", f"Bearer {self.access_token}")

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read()
        except urllib.error.HTTPError as e:
            raise SyncError(self._http_error_message(e)) from e
        except urllib.error.URLError as e:
            raise SyncError(f"Could not reach Google Sheets: {e.reason}") from e
        except TimeoutError as e:
            raise SyncError(f"Google Sheets did not answer within {self.timeout}s") from e

        try:
            result = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SyncError("Google Sheets returned a malformed response") from e

        values = result.get("values", []) if isinstance(result, dict) else None
        if not isinstance(values, list):
            raise SyncError("Google Sheets returned a malformed response")
        return values

    def fetch_all(self) -> List[Transaction]:
        """Every well-formed transaction in the sheet, in sheet order"""
        transactions = parse_rows(self.fetch_values())
        logger.info("Fetched %d transaction(s) from %s", len(transactions), self.range)
        return transactions

    @staticmethod
    def _http_error_message(e: urllib.error.HTTPError) -> str:
        """Prefer Google's own error message from the JSON body"""
        try:
            err_body = json.loads(e.read().decode("utf-8", errors="replace"))
            message = err_body["error"]["message"]
        except (ValueError, KeyError, TypeError, AttributeError):
            message = e.reason
        return f"Google Sheets request failed ({e.code}): {message}"
