from datetime import datetime

from fastapi import Request, HTTPException, Depends, Header
from sqlalchemy.orm import Session

from shopledger.core.config import settings
from shopledger.core.errors import AuthError, LoginRequired
from shopledger.core.security import decode_token
from shopledger.core.templating import templates
from shopledger.db.session import SessionLocal
from shopledger.models.user import User
from shopledger.services.preferences import get_settings

# DB Session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Get current user from session
def current_user(request: Request, db: Session = Depends(get_db)):
    user_id = request.session.get("user_id")
    if not user_id:
        return None
    return db.get(User, user_id)

# Require login; the app redirects LoginRequired to /login
def require_login(user: User = Depends(current_user)):
    if not user:
        raise LoginRequired()
    return user

# Bearer token for the scheduled reminder job
def require_job_token(authorization: str = Header(default="")):
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        sub = decode_token(token)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=e.message)
    if sub != settings.JOB_TOKEN_SUBJECT:
        raise HTTPException(status_code=403, detail="Token not valid for this job")
    return sub

def render_page(request: Request, db: Session, user: User, template: str, **context):
    prefs = get_settings(db, user)
    context.update({"request": request, "user": user, "prefs": prefs,
                    "currency": prefs.currency, "year": datetime.now().year})
    return templates.TemplateResponse(template, context)
