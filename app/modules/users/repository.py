from sqlalchemy.orm import Session
from sqlalchemy import desc
from typing import List, Optional

from app.shared.database.models import User

class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def list_excluding(self, excluded_user_id: int) -> List[User]:
        """Todos los usuarios excepto el indicado, más nuevos primero"""
        return self.db.query(User).filter(
            User.id != excluded_user_id
        ).order_by(desc(User.created_at), desc(User.id)).all()

    def create(self, user_data: dict) -> User:
        user = User(**user_data)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def update(self, user: User, update_data: dict) -> User:
        for key, value in update_data.items():
            setattr(user, key, value)
        self.db.commit()
        self.db.refresh(user)
        return user

    def delete(self, user: User) -> None:
        self.db.delete(user)
        self.db.commit()
