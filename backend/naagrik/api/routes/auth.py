from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from naagrik.api.dependencies import get_current_principal
from naagrik.core.database import get_db
from naagrik.core.security import Principal
from naagrik.schemas import AuthResponse, LoginRequest, RegisterRequest, RegisterResponse, UserProfile
from naagrik.services.auth_service import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(user_data: RegisterRequest, db: Session = Depends(get_db)):
    """Register a new user"""
    user = auth_service.register(db, user_data)
    return RegisterResponse(message="User registered successfully", user=user)


@router.post("/login", response_model=AuthResponse)
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """Login and get a bearer token"""
    return auth_service.login(db, credentials)


@router.get("/me", response_model=UserProfile)
def get_current_user_info(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """Get current user information"""
    return auth_service.get_profile(db, principal)
