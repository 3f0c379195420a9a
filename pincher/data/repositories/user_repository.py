from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from pincher.data.base import Base


class UserORM(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


def get_user_by_username(db, username: str):
    return db.query(UserORM).filter(UserORM.username == username).first()


def get_user(db, user_id: int):
    return db.query(UserORM).filter(UserORM.id == user_id).first()


def create_user(db, username: str, hashed_password: str):
    db_user = UserORM(username=username, hashed_password=hashed_password)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def update_user(db, user_id: int, **fields):
    """Update username and/or hashed_password; returns None if the user is gone."""
    user = get_user(db, user_id)
    if not user:
        return None
    for name in ("username", "hashed_password"):
        if fields.get(name) is not None:
            setattr(user, name, fields[name])
    db.commit()
    db.refresh(user)
    return user


def delete_user(db, user_id: int) -> bool:
    deleted = (
        db.query(UserORM)
        .filter(UserORM.id == user_id)
        .delete(synchronize_session=False)
    )
    return deleted > 0
