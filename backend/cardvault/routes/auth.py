import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError

from cardvault.core.identity import verify_identity
from cardvault.core.security import create_access_token
from cardvault.deps import get_current_user, get_storage
from cardvault.schemas.user import LoginRequest, TokenResponse, UserRead, UserUpsert
from cardvault.storage.interface import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

# --- Auth routes ---
@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, storage: Storage = Depends(get_storage)):
    valid, data = verify_identity(payload.init_data)
    if not valid:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid identity data")

    try:
        profile = UserUpsert(
            external_id=data["id"],
            email=data.get("email"),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            profile_image_url=data.get("profile_image_url"),
        )
    except ValidationError as exc:
        fields = ", ".join(str(err["loc"][0]) for err in exc.errors())
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid identity claims: {fields}")

    user = await storage.upsert_user(profile)
    logger.info("User %s logged in", user.id)

    token = create_access_token({"sub": user.id})
    return TokenResponse(access_token=token)

@router.get("/me", response_model=UserRead)
async def me(current_user: UserRead = Depends(get_current_user)):
    return current_user

@router.post("/logout")
def logout():
    return {"message": "Logout successful. Remove token on client side."}
