"""
Interactive segmentation sessions.
"""

from .session_manager import SegmentationSession, SessionManager
