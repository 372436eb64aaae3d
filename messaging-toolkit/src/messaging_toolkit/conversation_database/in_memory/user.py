from collections.abc import Iterable

from messaging_toolkit.conversation_database.data_models.user import User, UserDatabase, UserRole


class InMemoryUserDatabase(UserDatabase):
    def __init__(self, users: Iterable[User] = ()) -> None:
        self.users: dict[str, User] = {user.id: user for user in users}

    async def list_users(self) -> list[User]:
        return list(self.users.values())

    async def list_users_by_role(self, role: UserRole) -> list[User]:
        return [user for user in self.users.values() if user.role == role]

    async def get_user_by_id(self, user_id: str) -> User | None:
        return self.users.get(user_id)

    async def save_user(self, user: User) -> User:
        self.users[user.id] = user
        return user
