import logging

from sqlalchemy.orm import Session
from models.log import Log

logger = logging.getLogger("audit")

def _user_ref(user_id):
    # Log.user_id references users.id; non numeric identities go to meta only
    if user_id is None:
        return None
    text = str(user_id)
    return int(text) if text.isdigit() else None

def write_log(db: Session, *, user_id, action, resource, status="SUCCESS", ip=None, meta=None):
    meta = dict(meta or {})
    ref = _user_ref(user_id)
    if ref is None and user_id is not None:
        meta.setdefault("actor", str(user_id))
    entry = Log(user_id=ref, action=action, resource=resource, status=status, ip=ip, meta=meta)
    db.add(entry)
    db.commit()
    logger.info("%s %s %s user=%s meta=%s", resource, action, status, user_id, meta)
