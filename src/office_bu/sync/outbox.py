"""Persisted, ordered queue of changes waiting to be mirrored to the sheet.

Each local mutation becomes a sync intent with a monotonic sequence number.
Intents are delivered strictly in sequence order and removed only once the
webhook acknowledges them, so a late ``add`` can no longer overtake the
``delete`` that followed it. A failed delivery stops the flush; the failed
intent and everything after it wait for the next explicit flush.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from office_bu.domain.enums import SyncAction
from office_bu.domain.models import format_timestamp
from office_bu.logging_setup import get_logger
from office_bu.storage.local_store import LocalStore
from office_bu.sync.errors import SyncError
from office_bu.sync.webhook import WebhookClient, build_payload

logger = get_logger(__name__)


@dataclass
class SyncIntent:
    seq: int
    action: SyncAction
    payload: Dict[str, Any]
    record_ids: List[int] = field(default_factory=list)
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seq": self.seq,
            "action": self.action.value,
            "payload": self.payload,
            "record_ids": self.record_ids,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SyncIntent":
        return cls(
            seq=int(data["seq"]),
            action=SyncAction(data["action"]),
            payload=dict(data["payload"]),
            record_ids=[int(i) for i in data.get("record_ids", [])],
            created_at=data.get("created_at", ""),
        )


@dataclass
class FlushResult:
    """Outcome of one flush"""
    sent: List[SyncIntent] = field(default_factory=list)
    remaining: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


def _record_ids(payload: Dict[str, Any]) -> List[int]:
    """Ids of the records an intent touches"""
    if "transaction" in payload:
        return [int(payload["transaction"]["id"])]
    if "transactions" in payload:
        return [int(t["id"]) for t in payload["transactions"]]
    return [int(i) for i in payload.get("ids", [])]


class SyncOutbox:

    def __init__(
        self,
        store: LocalStore,
        key: str,
        seq_key: str,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.key = key
        self.seq_key = seq_key
        self.clock = clock

    def pending(self) -> List[SyncIntent]:
        """Intents not yet acknowledged, in sequence order"""
        raw = self.store.get_json(self.key, default=[])
        if not isinstance(raw, list):
            logger.warning("Outbox under %s is not a list, ignoring it", self.key)
            return []
        try:
            intents = [SyncIntent.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Outbox under %s is malformed (%s), ignoring it", self.key, e)
            return []
        return sorted(intents, key=lambda i: i.seq)

    def count(self) -> int:
        return len(self.pending())

    def _save(self, intents: List[SyncIntent]) -> None:
        if intents:
            self.store.set_json(self.key, [i.to_dict() for i in intents])
        else:
            self.store.remove_item(self.key)

    def _next_seq(self) -> int:
        current = self.store.get_item(self.seq_key)
        try:
            seq = int(current) + 1 if current is not None else 1
        except ValueError:
            logger.warning("Outbox sequence under %s is corrupt, restarting after pending items", self.seq_key)
            seq = max((i.seq for i in self.pending()), default=0) + 1
        self.store.set_item(self.seq_key, str(seq))
        return seq

    def enqueue(self, action: SyncAction, data: Any = None) -> SyncIntent:
        """
        Queue one change.

        A clear makes every earlier pending intent moot, so those are dropped.
        """
        payload = build_payload(action, data)
        intent = SyncIntent(
            seq=self._next_seq(),
            action=action,
            payload=payload,
            record_ids=_record_ids(payload),
            created_at=format_timestamp(self.clock()),
        )

        intents = [] if action is SyncAction.CLEAR else self.pending()
        intents.append(intent)
        self._save(intents)
        logger.debug("Queued sync intent #%d %s", intent.seq, action.value)
        return intent

    def flush(self, client: WebhookClient) -> FlushResult:
        """
        Deliver pending intents in order until one fails.

        Returns:
            What was sent, how many remain and the first error, if any
        """
        intents = self.pending()
        result = FlushResult()

        while intents:
            intent = intents[0]
            try:
                client.send(intent.payload)
            except SyncError as e:
                result.error = str(e)
                logger.warning("Sync intent #%d %s failed: %s", intent.seq, intent.action.value, e)
                break

            intents.pop(0)
            # Persist after each ack so a crash never resends a delivered intent
            self._save(intents)
            result.sent.append(intent)

        result.remaining = len(intents)
        return result

    def discard(self) -> int:
        """Drop every pending intent, e.g. after a full fetch replaced local state"""
        count = len(self.pending())
        self.store.remove_item(self.key)
        return count
