"""Write path of the sheet sync: one action-tagged POST per change.

The body is JSON but sent as ``text/plain`` so Apps Script web apps accept it
without a CORS preflight. A response whose ``status`` isn't ``"success"`` is a
failure whatever the HTTP status says.
"""
import json
import urllib.error
import urllib.request
from typing import Any, Dict, Iterable, Union

from office_bu.domain.enums import SyncAction, TransactionType
from office_bu.domain.models import Transaction
from office_bu.logging_setup import get_logger
from office_bu.sync.errors import SyncError

logger = get_logger(__name__)

TransactionLike = Union[Transaction, Dict[str, Any]]


def _as_dict(transaction: TransactionLike) -> Dict[str, Any]:
    return transaction.to_dict() if isinstance(transaction, Transaction) else dict(transaction)


def build_payload(action: SyncAction, data: Any = None) -> Dict[str, Any]:
    """
    Serialize exactly what the handler needs for an action.

    Args:
        action: The change to mirror
        data: add/delete -> a transaction; bulk_add -> transactions;
            bulk_delete -> ids; bulk_update -> {"ids": [...], "updates": {...}};
            clear -> nothing

    Returns:
        The request body as a dict
    """
    payload: Dict[str, Any] = {"action": action.value}

    if action in (SyncAction.ADD, SyncAction.DELETE):
        payload["transaction"] = _as_dict(data)
    elif action is SyncAction.BULK_ADD:
        payload["transactions"] = [_as_dict(t) for t in data]
    elif action is SyncAction.BULK_DELETE:
        payload["ids"] = [int(i) for i in data]
    elif action is SyncAction.BULK_UPDATE:
        updates = dict(data["updates"])
        if isinstance(updates.get("type"), TransactionType):
            updates["type"] = updates["type"].value
        payload["ids"] = [int(i) for i in data["ids"]]
        payload["updates"] = updates

    return payload


def bulk_update_data(ids: Iterable[int], new_type: TransactionType) -> Dict[str, Any]:
    return {"ids": list(ids), "updates": {"type": new_type.value}}


class WebhookClient:
    """POSTs change payloads to the spreadsheet webhook"""

    def __init__(self, url: str, timeout: float = 15):
        self.url = url
        self.timeout = timeout

    def sync_change(self, action: SyncAction, data: Any = None) -> Dict[str, Any]:
        """Build and send the payload for one change"""
        return self.send(build_payload(action, data))

    def send(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Send a prepared payload.

        Returns:
            The parsed success response

        Raises:
            SyncError: On HTTP/network failure, a malformed body, or an
                error status from the handler
        """
        data = json.dumps(payload).encode("utf-8")
        req = urllib.request.Request(self.url, data=data, method="POST")
        req.add_header("Content-Type", "text/plain;charset=utf-8")

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read()
        except urllib.error.HTTPError as e:
            raise SyncError(f"Webhook failed with status: {e.code} {e.reason}") from e
        except urllib.error.URLError as e:
            raise SyncError(f"Webhook request failed: {e.reason}") from e
        except TimeoutError as e:
            raise SyncError(f"Webhook request timed out after {self.timeout}s") from e

        try:
            result = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SyncError("Webhook returned a malformed response") from e

        if not isinstance(result, dict) or result.get("status") != "success":
            message = result.get("message") if isinstance(result, dict) else result
            raise SyncError(f"Webhook returned an error: {message}")

        logger.info("Webhook success (%s): %s", payload.get("action"), result.get("message"))
        return result
