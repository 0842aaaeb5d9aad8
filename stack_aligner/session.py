"""Interactive landmark acquisition.

Clicks record one point per slice and step to the next slice; confirm runs the
landmark pipeline; cancel or a closed image ends the session without changes.
"""

from __future__ import annotations

import enum
import logging
from typing import List, Optional

from .core import StackHost
from .errors import NoOutputRequestedError, SessionActiveError, SessionStateError
from .landmarks import Point, clicked_span
from .pipeline import AlignmentResult, ManualOptions, finalize_landmarks

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    AWAITING_INPUT = "awaiting_input"
    FINALIZING = "finalizing"
    DONE = "done"
    CANCELLED = "cancelled"


class ManualSession:
    def __init__(self, host: StackHost, options: Optional[ManualOptions] = None) -> None:
        options = options or ManualOptions()
        if host.locked:
            raise SessionActiveError("Another manual alignment is already running on this stack.")
        if not (options.transform_file or options.applies):
            raise NoOutputRequestedError("Choose at least one alignment axis or a transformation file.")

        self.host = host
        self.options = options
        self.points: List[Optional[Point]] = [None] * host.slice_count
        self.state = SessionState.AWAITING_INPUT
        self.result: Optional[AlignmentResult] = None

        host.locked = True
        host.active_slice = options.first_slice or 1

    @property
    def clicked(self) -> List[bool]:
        return [point is not None for point in self.points]

    def on_click(self, x: int, y: int) -> None:
        self._require_awaiting("click")
        slice_number = self.host.active_slice
        self.points[slice_number - 1] = (int(x), int(y))
        logger.debug("Landmark (%d, %d) on slice %d", x, y, slice_number)
        self.host.active_slice = slice_number + 1

    def confirm(self) -> Optional[AlignmentResult]:
        self._require_awaiting("confirm")
        if clicked_span(self.points) is None:
            logger.warning("No slice has been clicked yet.")
            return None

        current_slice = self.host.active_slice
        self.state = SessionState.FINALIZING
        self._release()
        try:
            self.result = finalize_landmarks(self.host, self.points, self.options, current_slice)
        except Exception:
            self.state = SessionState.CANCELLED
            raise
        self.state = SessionState.DONE
        return self.result

    def cancel(self) -> None:
        self._require_awaiting("cancel")
        self.state = SessionState.CANCELLED
        self._release()
        logger.info("Manual alignment cancelled.")

    def host_closed(self) -> None:
        if self.state is SessionState.AWAITING_INPUT:
            self.state = SessionState.CANCELLED
            self._release()
            logger.info("Image closed, manual alignment ended.")

    def _require_awaiting(self, event: str) -> None:
        if self.state is not SessionState.AWAITING_INPUT:
            raise SessionStateError(f"Cannot {event} in state {self.state.value}.")

    def _release(self) -> None:
        self.host.locked = False
