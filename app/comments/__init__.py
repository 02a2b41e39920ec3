"""Ticket replies and reply notification routing."""

from .models import Comment
from .repository import CommentRepository
from .router import ReplyRouter, preview_text
from .service import CommentService

__all__ = ["Comment", "CommentRepository", "CommentService", "ReplyRouter", "preview_text"]
