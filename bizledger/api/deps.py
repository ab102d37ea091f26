from bson import ObjectId
from fastapi import Header, HTTPException, status


async def get_owner_id(x_user_id: str = Header(..., description="Tenant user id")) -> ObjectId:
    """Tenant of the request. Authentication happens upstream; we only parse the id."""
    if not ObjectId.is_valid(x_user_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid X-User-Id header",
        )
    return ObjectId(x_user_id)
