import json
from typing import Any, Callable, Dict, List, Set

from office_bu.logging_setup import get_logger
from office_bu.sheets.backends import Sheet
from office_bu.sheets.columns import COLUMNS, coerce_id, column_index, transaction_to_row

logger = get_logger(__name__)

Response = Dict[str, Any]
SheetProvider = Callable[[], Sheet]


def success(message: str, **extra: Any) -> Response:
    return {"status": "success", "message": message, **extra}


def error(message: str) -> Response:
    return {"status": "error", "message": message}


class SpreadsheetActionHandler:
    """
    Applies action-tagged webhook payloads to a sheet.

    Handles one request at a time and assumes it is the only writer: deletes
    shift rows, so concurrent callers could hit the wrong row.

    Every request gets a tagged response. Exceptions never escape handle();
    they come back as {"status": "error", "message": ...}.
    """

    def __init__(self, sheet_provider: SheetProvider):
        """
        Args:
            sheet_provider: Opens the target sheet for a request. May raise
                SheetNotFoundError, which is reported as an error response.
        """
        self.sheet_provider = sheet_provider
        self._actions: Dict[str, Callable[[Sheet, Dict[str, Any]], Response]] = {
            "add": self._add,
            "bulk_add": self._bulk_add,
            "delete": self._delete,
            "bulk_delete": self._bulk_delete,
            "bulk_update": self._bulk_update,
            "clear": self._clear,
        }

    def handle_post(self, body: str) -> Response:
        """Entry point for a raw POST body"""
        try:
            payload = json.loads(body)
        except (TypeError, json.JSONDecodeError) as e:
            logger.warning("Rejected unparseable request body: %s", e)
            return error(f"Invalid JSON body: {e}")
        return self.handle(payload)

    def handle(self, payload: Any) -> Response:
        try:
            if not isinstance(payload, dict):
                raise ValueError("Request body must be a JSON object")

            action = payload.get("action")
            apply = self._actions.get(action)
            if apply is None:
                raise ValueError(f"Invalid action: {action}")

            sheet = self.sheet_provider()
            result = apply(sheet, payload)
            sheet.save()

            logger.info("%s: %s", action, result["message"])
            return result
        except Exception as e:
            logger.warning("Request failed: %s", e, exc_info=True)
            return error(str(e))

    def _index(self, sheet: Sheet, values: List[List[Any]]) -> Dict[str, int]:
        if not values:
            sheet.append_row(list(COLUMNS))
            return column_index(None)
        return column_index(values[0])

    @staticmethod
    def _id_set(raw_ids: Any) -> Set[int]:
        if not isinstance(raw_ids, list):
            raise ValueError("'ids' must be a list of transaction ids")
        return {i for i in (coerce_id(v) for v in raw_ids) if i is not None}

    def _add(self, sheet: Sheet, payload: Dict[str, Any]) -> Response:
        transaction = payload.get("transaction")
        if not isinstance(transaction, dict):
            raise ValueError("'add' requires a transaction object")

        index = self._index(sheet, sheet.get_values())
        sheet.append_row(transaction_to_row(transaction, index))
        return success("Added", id=coerce_id(transaction.get("id")))

    def _bulk_add(self, sheet: Sheet, payload: Dict[str, Any]) -> Response:
        transactions = payload.get("transactions") or []
        if not isinstance(transactions, list):
            raise ValueError("'transactions' must be a list")

        if transactions:
            index = self._index(sheet, sheet.get_values())
            sheet.append_rows([transaction_to_row(t, index) for t in transactions])
        return success(f"Bulk added {len(transactions)} items")

    def _delete(self, sheet: Sheet, payload: Dict[str, Any]) -> Response:
        transaction = payload.get("transaction") or {}
        target = coerce_id(transaction.get("id") if isinstance(transaction, dict) else None)
        if target is None:
            target = coerce_id(payload.get("id"))
        if target is None:
            raise ValueError("'delete' requires a transaction id")

        values = sheet.get_values()
        id_column = self._index(sheet, values)["id"]
        # Bottom-up, first match only
        for i in range(len(values) - 1, 0, -1):
            row = values[i]
            if id_column < len(row) and coerce_id(row[id_column]) == target:
                sheet.delete_row(i + 1)
                return success("Deleted", id=target)

        return success(f"Transaction {target} not found; it may have been deleted already", id=target)

    def _bulk_delete(self, sheet: Sheet, payload: Dict[str, Any]) -> Response:
        targets = self._id_set(payload.get("ids"))
        values = sheet.get_values()
        id_column = self._index(sheet, values)["id"]

        deleted = 0
        # Bottom-up so earlier deletes don't shift rows still to be visited
        for i in range(len(values) - 1, 0, -1):
            row = values[i]
            if id_column < len(row) and coerce_id(row[id_column]) in targets:
                sheet.delete_row(i + 1)
                deleted += 1
        return success(f"Bulk deleted {deleted} items")

    def _bulk_update(self, sheet: Sheet, payload: Dict[str, Any]) -> Response:
        targets = self._id_set(payload.get("ids"))
        updates = payload.get("updates") or {}
        if not isinstance(updates, dict):
            raise ValueError("'updates' must be an object")

        values = sheet.get_values()
        index = self._index(sheet, values)
        new_type = updates.get("type")

        updated = 0
        for i in range(1, len(values)):
            row = values[i]
            if index["id"] < len(row) and coerce_id(row[index["id"]]) in targets:
                if new_type:
                    sheet.set_value(i + 1, index["type"] + 1, new_type)
                updated += 1
        return success(f"Bulk updated {updated} items")

    def _clear(self, sheet: Sheet, payload: Dict[str, Any]) -> Response:
        sheet.clear_data_rows()
        return success("Cleared")
