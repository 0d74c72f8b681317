"""
Session Manager.

Keeps per-session click history and the last produced mask.

Session lifecycle:
- Active: created, accepts click edits and segment calls
- Disposed: removed from the store; every operation raises NotFoundError

Calls against one session are not serialized; callers that issue
concurrent add_click/segment calls on the same session must order them.
"""

from __future__ import annotations

import itertools
import uuid
from typing import TYPE_CHECKING, Dict, List, Optional, Union
from loguru import logger

from tinysam.core.contracts import Click, ClickType, MaskImage, SessionState, SourceImage
from tinysam.core.errors import NotFoundError

if TYPE_CHECKING:
    from tinysam.pipeline.orchestrator import ImageLike, Segmenter


class SessionManager:
    """
    Store of SessionState objects keyed by session identifier.

    Identifiers combine a monotonically increasing counter with a random
    suffix and are checked against the live store before use.
    """

    def __init__(self, segmenter: Segmenter):
        self._segmenter = segmenter
        self._sessions: Dict[str, SessionState] = {}
        self._counter = itertools.count(1)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def _new_session_id(self) -> str:
        while True:
            session_id = f"session_{next(self._counter)}_{uuid.uuid4().hex[:9]}"
            if session_id not in self._sessions:
                return session_id

    def _state(self, session_id: str) -> SessionState:
        state = self._sessions.get(session_id)
        if state is None:
            raise NotFoundError(f"Session state not found: {session_id}")
        return state

    # ============================================================
    # LIFECYCLE
    # ============================================================

    def create(self, image: SourceImage) -> str:
        """Create a session for an image and return its identifier."""
        session_id = self._new_session_id()
        self._sessions[session_id] = SessionState(image_identity=image.identity)
        logger.debug(f"Created {session_id} for {image.identity}")
        return session_id

    def open(self, image: SourceImage) -> SegmentationSession:
        """Create a session and return a handle to it."""
        return SegmentationSession(self, self.create(image))

    def dispose(self, session_id: str):
        """Remove a session. Disposing twice is a no-op."""
        if self._sessions.pop(session_id, None) is None:
            logger.debug(f"{session_id} already disposed")
            return
        logger.debug(f"Disposed {session_id}")

    def clear(self):
        """Dispose every session."""
        count = len(self._sessions)
        self._sessions.clear()
        logger.info(f"Cleared {count} session(s)")

    # ============================================================
    # CLICK HISTORY
    # ============================================================

    def add_click(
        self,
        session_id: str,
        x: float,
        y: float,
        kind: Union[ClickType, str] = ClickType.INCLUDE,
    ):
        state = self._state(session_id)
        state.clicks.append(Click(x, y, ClickType.parse(kind)))

    def remove_last_click(self, session_id: str):
        """Undo the latest click; does nothing when there is none."""
        state = self._state(session_id)
        if state.clicks:
            state.clicks.pop()

    def reset(self, session_id: str):
        """Clear clicks and the last mask; the session stays active."""
        state = self._state(session_id)
        state.clicks = []
        state.last_mask = None

    def get_clicks(self, session_id: str) -> List[Click]:
        return list(self._state(session_id).clicks)

    def get_click_count(self, session_id: str) -> int:
        return len(self._state(session_id).clicks)

    def get_last_mask(self, session_id: str) -> Optional[MaskImage]:
        return self._state(session_id).last_mask

    def get_image_identity(self, session_id: str) -> str:
        return self._state(session_id).image_identity

    # ============================================================
    # SEGMENTATION
    # ============================================================

    async def segment(self, session_id: str, image: ImageLike) -> Optional[MaskImage]:
        """
        Segment with the session's clicks and remember the result.

        With no clicks the last mask is cleared and None is returned
        without running any model.
        """
        state = self._state(session_id)

        if not state.clicks:
            state.last_mask = None
            return None

        identity = getattr(image, "identity", None)
        if identity is not None and identity != state.image_identity:
            logger.warning(
                f"{session_id} was created for {state.image_identity} "
                f"but is segmenting {identity}"
            )

        mask = await self._segmenter.segment(image, list(state.clicks))
        state.last_mask = mask
        return mask


class SegmentationSession:
    """
    Handle to one session of a SessionManager.

    Click-editing methods return the handle so calls can be chained:

        session.add_click(10, 20).add_click(50, 60, "exclude")
    """

    def __init__(self, manager: SessionManager, session_id: str):
        self._manager = manager
        self.session_id = session_id

    def __repr__(self) -> str:
        return f"SegmentationSession({self.session_id!r})"

    @property
    def image_identity(self) -> str:
        return self._manager.get_image_identity(self.session_id)

    def add_click(
        self,
        x: float,
        y: float,
        kind: Union[ClickType, str] = ClickType.INCLUDE,
    ) -> SegmentationSession:
        self._manager.add_click(self.session_id, x, y, kind)
        return self

    def remove_last_click(self) -> SegmentationSession:
        self._manager.remove_last_click(self.session_id)
        return self

    def reset(self) -> SegmentationSession:
        self._manager.reset(self.session_id)
        return self

    def get_clicks(self) -> List[Click]:
        return self._manager.get_clicks(self.session_id)

    def get_click_count(self) -> int:
        return self._manager.get_click_count(self.session_id)

    def get_last_mask(self) -> Optional[MaskImage]:
        return self._manager.get_last_mask(self.session_id)

    async def segment(self, image: ImageLike) -> Optional[MaskImage]:
        return await self._manager.segment(self.session_id, image)

    def dispose(self):
        self._manager.dispose(self.session_id)
