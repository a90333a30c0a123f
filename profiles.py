import logging

from repositories import UserRepository
from schemas import ProfileUpdate, Role, UserProfile, utcnow

logger = logging.getLogger(__name__)


class Profiles:
    def __init__(self, store):
        self.users = UserRepository(store)

    def get_or_create(self, identity: dict) -> UserProfile:
        """Profile for a verified identity, created from its claims on first sight."""
        profile = self.users.get(identity["id"])
        if profile:
            return profile
        metadata = identity.get("user_metadata") or {}
        role = metadata.get("role", Role.USER.value)
        if role not in (Role.USER.value, Role.ADMIN.value):
            role = Role.USER.value
        profile = UserProfile(
            id=identity["id"],
            email=identity.get("email"),
            name=metadata.get("name") or "",
            phone=metadata.get("phone") or "",
            role=role,
        )
        logger.info("Profile created", extra={"user_id": profile.id, "role": profile.role.value})
        return self.users.put(profile)

    def update(self, user_id: str, updates: ProfileUpdate) -> UserProfile:
        # ProfileUpdate has no role/id fields, so neither can change here
        profile = self.users.get(user_id) or UserProfile(id=user_id)
        changes = updates.model_dump(exclude_unset=True, exclude_none=True)
        profile = profile.model_copy(update={**changes, "updated_at": utcnow()})
        return self.users.put(profile)
