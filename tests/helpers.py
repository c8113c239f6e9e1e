from datetime import datetime, timedelta, timezone

import jwt

from hkids.core.config import settings
from hkids.models import ReadingSession

# A fixed Monday noon in UTC; tests that pass ``now`` explicitly use it
NOON = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def create_access_token(subject, role, parent_id=None, expires_delta=None):
    """Sign a token the way the auth service does, with the API's key."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": str(subject),
        "role": role.value,
        "iat": now,
        "exp": expire,
    }
    if parent_id is not None:
        payload["parent_id"] = str(parent_id)
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


async def add_finished_session(db, child, book, started_at, minutes, pages=None):
    """Insert an already finalized session, as if the child read earlier."""
    session = ReadingSession(
        child_id=child.id,
        parent_id=child.parent_id,
        book_id=book.id,
        started_at=started_at,
        ended_at=started_at + timedelta(minutes=minutes),
        minutes=minutes,
        pages_read=list(pages or []),
    )
    db.add(session)
    await db.commit()
    return session
