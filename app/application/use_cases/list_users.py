from __future__ import annotations

from app.application.dto.users import UserListQuery, UserPage
from app.application.ports.user_port import UserPort


MAX_PAGE_SIZE = 100


class ListUsersUseCase:
    def __init__(self, *, user_port: UserPort):
        self._user_port = user_port

    def execute(self, query: UserListQuery) -> UserPage:
        page = max(query.page, 1)
        limit = min(max(query.limit, 1), MAX_PAGE_SIZE)
        search = query.search.strip() if query.search else None
        return self._user_port.list_users(
            query=UserListQuery(page=page, limit=limit, search=search or None)
        )
