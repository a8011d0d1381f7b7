from fastapi import APIRouter, Depends, Request, status

from pathshala.common.deps import CurrentUser, get_current_user, get_session_gate

from .schemas import LoginRequest, LoginResponse, LogoutResponse, MeResponse
from .service import SessionGate

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", status_code=status.HTTP_200_OK, response_model=LoginResponse)
async def login(payload: LoginRequest, request: Request, gate: SessionGate = Depends(get_session_gate)):
    """Authenticate with email/password; refused while another device holds the session."""
    device_info = payload.device_info or request.headers.get("user-agent", "")
    identity = await gate.login(payload.email, payload.password, device_info)
    return LoginResponse(
        user_id=identity.id,
        email=identity.email,
        is_admin=gate.is_admin,
        access_token=identity.access_token,
        refresh_token=identity.refresh_token,
        expires_in=identity.expires_in,
    )


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    current_user: CurrentUser = Depends(get_current_user),
    gate: SessionGate = Depends(get_session_gate),
):
    result = await gate.logout(current_user.identity())
    detail = "সফলভাবে লগআউট হয়েছে!" if result.session_cleared else "লগআউট হয়েছে, তবে সেশন মুছতে সমস্যা হয়েছে।"
    return LogoutResponse(detail=detail, session_cleared=result.session_cleared, signed_out=result.signed_out)


@router.get("/me", response_model=MeResponse)
async def me(current_user: CurrentUser = Depends(get_current_user)):
    return MeResponse(id=current_user.id, email=current_user.email, is_admin=current_user.is_admin)
