from pydantic import BaseModel, ConfigDict
from models.enums import UserRole


class RequestContext(BaseModel):
    """
    Identity of the caller for one request.

    Built by the auth dependency and passed explicitly into every service call.
    """
    model_config = ConfigDict(frozen=True)

    user_id: int
    role: UserRole = UserRole.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
