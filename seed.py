# seed.py - create tables and the first admin account
import logging
import sys

from sqlalchemy.orm import configure_mappers

import marketplace.models  # noqa: F401
from marketplace.config import Settings
from marketplace.db import Base, build_engine, build_session_factory
from marketplace.models.user import User
from marketplace.utils.enums import UserRole
from marketplace.utils.security import hash_password

logger = logging.getLogger("seed")


def run_seed(settings: Settings, username: str, email: str, password: str, phone: str = "-") -> User:
    engine = build_engine(settings)
    configure_mappers()
    Base.metadata.create_all(bind=engine)
    logger.info("tables ready at %s", engine.url)

    db = build_session_factory(engine)()
    try:
        user = db.query(User).filter(User.email == email.lower()).first()
        if user is None:
            user = User(
                username=username,
                email=email.lower(),
                phone=phone,
                password_hash=hash_password(password),
                role=UserRole.ADMIN.value,
            )
            db.add(user)
            logger.info("admin created (username=%r, email=%r)", username, email)
        else:
            user.role = UserRole.ADMIN.value
            logger.info("user %r already exists, promoted to admin", email)
        db.commit()
        db.refresh(user)
        return user
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    if len(sys.argv) < 4:
        print("usage: python seed.py <username> <email> <password> [phone]")
        sys.exit(1)
    run_seed(Settings.from_env(), *sys.argv[1:5])
