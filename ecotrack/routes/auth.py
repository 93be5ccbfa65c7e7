from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from ecotrack.core.platform import PlatformClient, get_platform
from ecotrack.core.session import AuthSession, get_auth_session, get_profile_session
from ecotrack.db.session import get_db
from ecotrack.schemas.auth_schema import (
    AuthResponse,
    ConfirmRequest,
    LoginRequest,
    MessageResponse,
    ResendOtpRequest,
    SignUpRequest,
    SignUpResponse,
    VerifyOtpRequest,
)
from ecotrack.schemas.profile_schema import AccountDeletedResponse, ProfileResponse, ProfileUpdate
from ecotrack.services import auth as auth_service
from ecotrack.services.profile import update_profile_photo

router = APIRouter()


@router.post("/signup", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
def signup(data: SignUpRequest, db: Session = Depends(get_db),
           platform: PlatformClient = Depends(get_platform)):
    return auth_service.register_user(data, db, platform)


@router.post("/verify-otp", response_model=AuthResponse)
def verify_otp(data: VerifyOtpRequest, db: Session = Depends(get_db),
               platform: PlatformClient = Depends(get_platform)):
    return auth_service.verify_signup_otp(data.email, data.token, data.type, db, platform)


@router.post("/resend-otp", response_model=MessageResponse)
def resend_otp(data: ResendOtpRequest, platform: PlatformClient = Depends(get_platform)):
    platform.resend(data.email.strip().lower())
    return MessageResponse(message="A new verification code has been sent to your email.")


@router.post("/login", response_model=AuthResponse)
def login(data: LoginRequest, db: Session = Depends(get_db),
          platform: PlatformClient = Depends(get_platform)):
    return auth_service.login_user(data.email, data.password, db, platform)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(session: AuthSession = Depends(get_auth_session),
           platform: PlatformClient = Depends(get_platform)):
    auth_service.logout_user(session, platform)


# ------------------------------------------
#  Current user profile
# ------------------------------------------
@router.get("/me", response_model=ProfileResponse)
def read_me(session: AuthSession = Depends(get_profile_session)):
    return auth_service.profile_response(session.profile)


@router.patch("/me", response_model=ProfileResponse)
def update_me(updates: ProfileUpdate, session: AuthSession = Depends(get_profile_session),
              db: Session = Depends(get_db)):
    return auth_service.update_profile(session, updates, db)


@router.post("/me/photo", response_model=ProfileResponse)
def upload_photo(file: UploadFile = File(...), session: AuthSession = Depends(get_profile_session),
                 db: Session = Depends(get_db), platform: PlatformClient = Depends(get_platform)):
    return update_profile_photo(db, platform, session, file)


@router.delete("/me", response_model=AccountDeletedResponse)
def delete_me(body: ConfirmRequest, session: AuthSession = Depends(get_profile_session),
              db: Session = Depends(get_db), platform: PlatformClient = Depends(get_platform)):
    if body.confirmation != "DELETE":
        raise HTTPException(status_code=400, detail='Type "DELETE" to confirm account deletion')
    return auth_service.delete_account(session, db, platform)
