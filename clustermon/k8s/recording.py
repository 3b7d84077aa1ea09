"""In-memory cluster client.

RecordingClient keeps applied objects in a dict keyed by identity and logs
every call it receives. The CLI uses it for dry runs; tests use it as a
cluster stand-in, including failure injection via ``fail_on``.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from clustermon.core.context import Context
from clustermon.core.schema.kinds import ObjectIdentity
from clustermon.core.schema.objects import DesiredObject

logger = logging.getLogger(__name__)

APPLY = "apply"
DELETE = "delete"

CREATED = "created"
UPDATED = "updated"
UNCHANGED = "unchanged"
DELETED = "deleted"
ABSENT = "absent"


@dataclass(frozen=True)
class Call:
    """One client call: the action, the target identity and its result."""

    action: str
    identity: ObjectIdentity
    result: str


class RecordingClient:
    """Client protocol implementation backed by a dict.

    Attributes:
        objects: Live objects keyed by identity
        calls: Completed calls in order (failed and cancelled calls excluded)
    """

    def __init__(self, objects: Optional[Dict[ObjectIdentity, Dict[str, Any]]] = None) -> None:
        self.objects: Dict[ObjectIdentity, Dict[str, Any]] = dict(objects or {})
        self.calls: List[Call] = []
        self._failures: Dict[Tuple[str, ObjectIdentity], Exception] = {}
        self._lock = threading.Lock()

    def fail_on(self, action: str, identity: ObjectIdentity, error: Exception) -> None:
        """Make the next ``action`` ("apply" or "delete") on ``identity`` raise ``error``."""
        with self._lock:
            self._failures[(action, identity)] = error

    def create_or_update(self, ctx: Context, obj: DesiredObject) -> None:
        ctx.check()
        identity = obj.identity
        desired = obj.to_serializable()
        with self._lock:
            self._raise_injected(APPLY, identity)
            live = self.objects.get(identity)
            if live is None:
                result = CREATED
            elif live == desired:
                result = UNCHANGED
            else:
                result = UPDATED
            self.objects[identity] = desired
            self.calls.append(Call(APPLY, identity, result))
        logger.info(f"{identity}: {result}")

    def delete(self, ctx: Context, obj: DesiredObject) -> None:
        ctx.check()
        identity = obj.identity
        with self._lock:
            self._raise_injected(DELETE, identity)
            result = DELETED if self.objects.pop(identity, None) is not None else ABSENT
            self.calls.append(Call(DELETE, identity, result))
        logger.info(f"{identity}: {result}")

    def _raise_injected(self, action: str, identity: ObjectIdentity) -> None:
        error = self._failures.pop((action, identity), None)
        if error is not None:
            raise error

    def identities(self, action: Optional[str] = None) -> List[ObjectIdentity]:
        """Identities of the recorded calls, optionally filtered by action."""
        return [c.identity for c in self.calls if action is None or c.action == action]
