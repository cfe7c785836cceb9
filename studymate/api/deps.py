from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from studymate.core.security import decode_access_token
from studymate.db.database import get_db
from studymate.models.user import User
from studymate.services.ai_service import StudyContentGenerator
from studymate.services.generation import ContentGenerator, GenerationOrchestrator
from studymate.services.ingestion_service import IngestionService
from studymate.services.retry import RetryPolicy
from studymate.services.study_material_service import StudyMaterialService
from studymate.services.usage_ledger import UsageLedger

# Tokens are issued by the account service; there is no login route here
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_current_user(
    request: Request,
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    payload = decode_access_token(token)
    if payload is None:
        raise credentials_exception
    user_id = payload.get("sub")
    if user_id is None or not str(user_id).isdigit():
        raise credentials_exception

    user = db.query(User).filter(User.id == int(user_id)).first()
    if user is None or not user.is_active:
        raise credentials_exception
    request.state.user_id = user.id
    return user


def get_generator() -> ContentGenerator:
    return StudyContentGenerator()


def get_orchestrator(generator: ContentGenerator = Depends(get_generator)) -> GenerationOrchestrator:
    return GenerationOrchestrator(generator, RetryPolicy.from_settings())


def get_ingestion_service(
    db: Session = Depends(get_db),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> IngestionService:
    return IngestionService(db, orchestrator)


def get_usage_ledger(db: Session = Depends(get_db)) -> UsageLedger:
    return UsageLedger(db)


def get_study_material_service(db: Session = Depends(get_db)) -> StudyMaterialService:
    return StudyMaterialService(db)
