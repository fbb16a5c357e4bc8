from typing import Dict
import logging

import database
from models.auth import CurrentUser, UserDto, UpdateUserRequest
from models.common import ActivityAction, EntityType, PagedResponse, paginate
from services.activity_log import activity_log_service
from services.exceptions import NotFoundError, ForbiddenError, InvalidOperationError

logger = logging.getLogger(__name__)


def to_user_dto(user: Dict) -> UserDto:
    return UserDto(
        id=user["id"],
        email=user["email"],
        first_name=user["first_name"],
        last_name=user["last_name"],
        role=user["role"],
        is_active=user["is_active"],
        created_at=user["created_at"],
        updated_at=user.get("updated_at")
    )


class UserService:
    """User profile management"""

    def _get(self, user_id: str) -> Dict:
        user = database.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def get_all(self, page: int, page_size: int) -> PagedResponse:
        users = [to_user_dto(u) for u in database.list_users()]
        return paginate(users, page, page_size)

    def get_by_id(self, user_id: str, caller: CurrentUser) -> UserDto:
        if caller.id != user_id and not caller.is_admin:
            raise ForbiddenError("You can only view your own profile")
        return to_user_dto(self._get(user_id))

    def update(self, user_id: str, request: UpdateUserRequest, caller: CurrentUser) -> UserDto:
        if caller.id != user_id and not caller.is_admin:
            raise ForbiddenError("You can only update your own profile")
        user = self._get(user_id)

        fields = {
            "first_name": request.first_name.strip(),
            "last_name": request.last_name.strip(),
        }
        if request.email and request.email.lower() != user["email"].lower():
            existing = database.get_user_by_email(request.email)
            if existing is not None and existing["id"] != user_id:
                raise InvalidOperationError("Email is already in use")
            fields["email"] = request.email

        database.update_user(user_id, fields)
        activity_log_service.log_activity(
            caller.id, ActivityAction.UPDATE, EntityType.USER, user_id, "Updated user profile"
        )
        return to_user_dto(self._get(user_id))

    def delete(self, user_id: str, caller: CurrentUser) -> None:
        if user_id == caller.id:
            raise InvalidOperationError("You cannot delete your own account")
        self._get(user_id)
        database.update_user(user_id, {
            "is_deleted": True,
            "refresh_token": None,
            "refresh_token_expiry_time": None,
        })
        activity_log_service.log_activity(
            caller.id, ActivityAction.DELETE, EntityType.USER, user_id, "Deleted user"
        )
        logger.info(f"User {user_id} soft-deleted by {caller.id}")

    def toggle_active(self, user_id: str, caller: CurrentUser) -> UserDto:
        user = self._get(user_id)
        if user_id == caller.id and user["is_active"]:
            raise InvalidOperationError("You cannot deactivate your own account")
        new_state = not user["is_active"]
        database.update_user(user_id, {"is_active": new_state})
        activity_log_service.log_activity(
            caller.id,
            ActivityAction.ACTIVATE if new_state else ActivityAction.DEACTIVATE,
            EntityType.USER,
            user_id,
            f"User {'activated' if new_state else 'deactivated'}"
        )
        return to_user_dto(self._get(user_id))

    def count(self) -> int:
        return database.count_users()


user_service = UserService()
