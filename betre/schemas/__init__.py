from betre.schemas.user import (
    UserCreate,
    UserUpdate,
    UserResponse,
    UserPublic,
    Token,
    LoginRequest,
)
from betre.schemas.post import PostCreate, PostUpdate, PostResponse
from betre.schemas.comment import CommentCreate, CommentResponse
from betre.schemas.moderation import ReportCreate, ReportResponse, WarningCreate, WarningResponse
