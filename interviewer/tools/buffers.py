"""
Call buffer store - accumulates streamed tool-call argument fragments.

One buffer per live call id. A buffer is created by the first fragment that
references an unseen id and removed the moment its terminal event is seen.
There is no expiry: a call whose terminal event never arrives keeps its
buffer until the session is torn down.
"""

from typing import Dict, List, Optional

import structlog

from interviewer.core.models import CallBuffer

logger = structlog.get_logger(__name__)


class CallBufferStore:
    """Owns every CallBuffer of a session."""

    def __init__(self):
        self._buffers: Dict[str, CallBuffer] = {}

    def _open(self, call_id: str, name: Optional[str]) -> CallBuffer:
        buffer = self._buffers.get(call_id)
        if buffer is None:
            buffer = CallBuffer(call_id=call_id, name=name)
            self._buffers[call_id] = buffer
            logger.debug("Tool call buffer opened", call_id=call_id, tool=name)
        elif name and not buffer.name:
            buffer.name = name
        return buffer

    def append(self, call_id: str, fragment: str, name: Optional[str] = None) -> CallBuffer:
        """Append a fragment to the buffer for ``call_id``, creating it if absent."""
        buffer = self._open(call_id, name)
        buffer.append(fragment)
        return buffer

    def replace(self, call_id: str, raw: str, name: Optional[str] = None) -> CallBuffer:
        """Overwrite the buffered text with a complete argument string."""
        buffer = self._open(call_id, name)
        if buffer.raw and buffer.raw != raw:
            logger.debug(
                "Complete arguments extend streamed fragments; keeping complete text",
                call_id=call_id,
                streamed_len=len(buffer.raw),
                complete_len=len(raw),
            )
        buffer.raw = raw
        return buffer

    def get(self, call_id: str) -> Optional[CallBuffer]:
        return self._buffers.get(call_id)

    def pop(self, call_id: str) -> Optional[CallBuffer]:
        """Remove and return the buffer for ``call_id`` (None if nothing was buffered)."""
        return self._buffers.pop(call_id, None)

    def pending_call_ids(self) -> List[str]:
        return list(self._buffers.keys())

    def clear(self) -> None:
        """Discard all buffers, including partial ones."""
        if self._buffers:
            logger.info("Discarding unfinished tool call buffers", call_ids=list(self._buffers.keys()))
        self._buffers.clear()

    def __len__(self) -> int:
        return len(self._buffers)

    def __contains__(self, call_id: object) -> bool:
        return call_id in self._buffers
