"""
Club-wide and team-scoped posts. A post carries exactly one of club_id / team_id.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Any

from teamhub.models import Post, PostScope, PostType, Role, User
from teamhub.persistence.repositories import PlayerRepository, PostRepository, TeamRepository
from teamhub.services.errors import ForbiddenError, InvalidArgumentError, NotFoundError

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("type", "title", "content")


def _author_role(user: User) -> str:
    if user.is_coach:
        return Role.COACH.value
    if user.is_parent:
        return Role.PARENT.value
    return ""


class PostService:
    def __init__(self) -> None:
        self._post_repo = PostRepository()
        self._team_repo = TeamRepository()
        self._player_repo = PlayerRepository()

    def _postable_team_ids(self, conn: sqlite3.Connection, user: User) -> set[str]:
        """Coach: managed teams. Parent: teams of their players."""
        ids: set[str] = set()
        if user.is_coach:
            ids.update(user.team_ids)
        if user.is_parent:
            ids.update(p.team_id for p in self._player_repo.list_by_parent(conn, user.id))
        return ids

    def create_post(
        self,
        conn: sqlite3.Connection,
        user: User,
        type: str,
        title: str,
        content: str,
        scope: str,
        team_id: str | None = None,
    ) -> Post:
        try:
            post_type = PostType(type).value
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid post type: {type}") from e
        try:
            post_scope = PostScope(scope)
        except ValueError as e:
            raise InvalidArgumentError(f"Scope must be 'team' or 'club' (got {scope})") from e
        if not user.roles:
            raise ForbiddenError("Select a role before posting")

        club_id: str | None = None
        if post_scope == PostScope.CLUB:
            if team_id is not None:
                raise InvalidArgumentError("A club post cannot target a team")
            if not user.club_id:
                raise InvalidArgumentError("Join a club before posting to it")
            club_id = user.club_id
        else:
            if not team_id:
                raise InvalidArgumentError("team_id is required for team posts")
            if self._team_repo.get(conn, team_id) is None:
                raise NotFoundError(f"Team not found: {team_id}")
            if team_id not in self._postable_team_ids(conn, user):
                logger.warning("User %s tried to post to team %s", user.id, team_id)
                raise ForbiddenError("You can only post to your own teams")

        post = self._post_repo.create(
            conn,
            type=post_type,
            title=title.strip(),
            content=content,
            author_id=user.id,
            author_name=user.name or user.email,
            author_role=_author_role(user),
            team_id=team_id if post_scope == PostScope.TEAM else None,
            club_id=club_id,
        )
        logger.info("Post %s (%s) created by %s", post.id, post.scope, user.id)
        return post

    def _get_own_post(self, conn: sqlite3.Connection, user: User, post_id: str) -> Post:
        post = self._post_repo.get(conn, post_id)
        if post is None:
            raise NotFoundError(f"Post not found: {post_id}")
        if post.author_id != user.id:
            raise ForbiddenError("Only the author can change this post")
        return post

    def update_post(
        self, conn: sqlite3.Connection, user: User, post_id: str, updates: dict[str, Any]
    ) -> Post:
        self._get_own_post(conn, user, post_id)
        # Explicit nulls leave the field unchanged
        changes = {k: v for k, v in updates.items() if k in _EDITABLE_FIELDS and v is not None}
        if "title" in changes:
            changes["title"] = changes["title"].strip()
            if not changes["title"]:
                raise InvalidArgumentError("Title cannot be empty")
        if "type" in changes:
            try:
                changes["type"] = PostType(changes["type"]).value
            except ValueError as e:
                raise InvalidArgumentError(f"Invalid post type: {changes['type']}") from e
        updated = self._post_repo.update(conn, post_id, changes)
        if updated is None:
            raise NotFoundError(f"Post not found: {post_id}")
        return updated

    def delete_post(self, conn: sqlite3.Connection, user: User, post_id: str) -> None:
        self._get_own_post(conn, user, post_id)
        self._post_repo.delete(conn, post_id)
