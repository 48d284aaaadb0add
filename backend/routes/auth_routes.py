from fastapi import APIRouter, Depends

from backend.auth.dependencies import get_current_user
from backend.models.user import User

router = APIRouter(tags=['auth'])


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return {
        "success": True,
        "user": {
            "id": str(current_user.id),
            "email": current_user.email,
            "role": current_user.role,
            "firstName": current_user.first_name,
            "lastName": current_user.last_name,
        },
    }
