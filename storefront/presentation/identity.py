from typing import Optional
from fastapi import Depends, Header, HTTPException

from storefront.domain.models import Identity, Role


async def get_optional_identity(
    x_user_id: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
    x_user_email: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None)
) -> Optional[Identity]:
    """Identity forwarded by the authenticating gateway, None for anonymous requests"""
    if not x_user_id:
        return None
    try:
        role = Role.parse(x_user_role)
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Unknown role: {x_user_role}")
    return Identity(
        user_id=x_user_id,
        name=x_user_name or "",
        email=x_user_email or "",
        role=role
    )


async def get_current_identity(
    identity: Optional[Identity] = Depends(get_optional_identity)
) -> Identity:
    if identity is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return identity


async def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.role.can_review_payments():
        raise HTTPException(status_code=403, detail="Administrator role required")
    return identity
