"""High-level data access helpers backed by SQLAlchemy."""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import select, update, delete

from booknet.db.models import Role, Token, TokenPurpose, User
from booknet.db.session import get_session


class SQLRepository:
    """CRUD helpers wrapping the SQLAlchemy session.

    Every method opens its own session and commits once, so a method is the
    transactional unit. Flows that must change several rows atomically get a
    dedicated method (``activate_user``, ``reset_user_password``).
    """

    # -------------------------- users --------------------------
    def get_user(self, user_id: int) -> Optional[User]:
        with get_session() as session:
            return session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with get_session() as session:
            stmt = select(User).where(User.email == email)
            return session.execute(stmt).scalar_one_or_none()

    def create_user(
        self,
        *,
        firstname: str,
        lastname: str,
        email: str,
        password_hash: str,
        role_names: Iterable[str] = ("USER",),
        date_of_birth: date | None = None,
        enabled: bool = False,
        account_locked: bool = False,
    ) -> User:
        now = datetime.now(timezone.utc)
        with get_session() as session:
            roles = session.execute(select(Role).where(Role.name.in_(list(role_names)))).scalars().all()
            user = User(
                firstname=firstname,
                lastname=lastname,
                email=email,
                password=password_hash,
                date_of_birth=date_of_birth,
                enabled=enabled,
                account_locked=account_locked,
                created_at=now,
                updated_at=now,
                roles=list(roles),
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            return user

    def activate_user(self, user_id: int, token_id: int, validated_at: datetime) -> bool:
        """Stamp the activation code and enable its owner in one commit.

        Returns False, writing nothing, when the code is gone or expired by now.
        """
        with get_session() as session:
            stamped = session.execute(
                update(Token)
                .where(Token.id == token_id, Token.expires_at >= validated_at)
                .values(validated_at=validated_at)
            )
            if stamped.rowcount != 1:
                session.rollback()
                return False
            session.execute(
                update(User).where(User.id == user_id).values(enabled=True, updated_at=datetime.now(timezone.utc))
            )
            session.commit()
            return True

    def reset_user_password(self, user_id: int, password_hash: str, token_id: int, now: datetime) -> bool:
        """Consume a verified, live reset code and store the new hash in one commit.

        Returns False, writing nothing, when another request already consumed the
        code or it is no longer verified and live.
        """
        with get_session() as session:
            consumed = session.execute(
                delete(Token).where(
                    Token.id == token_id,
                    Token.validated_at.is_not(None),
                    Token.expires_at >= now,
                )
            )
            if consumed.rowcount != 1:
                session.rollback()
                return False
            session.execute(
                update(User)
                .where(User.id == user_id)
                .values(password=password_hash, updated_at=datetime.now(timezone.utc))
            )
            session.commit()
            return True

    def update_user_photo(self, user_id: int, photo: str) -> None:
        with get_session() as session:
            stmt = update(User).where(User.id == user_id).values(photo=photo, updated_at=datetime.now(timezone.utc))
            session.execute(stmt)
            session.commit()

    # -------------------------- roles --------------------------
    def get_role(self, name: str) -> Optional[Role]:
        with get_session() as session:
            stmt = select(Role).where(Role.name == name)
            return session.execute(stmt).scalar_one_or_none()

    # -------------------------- tokens --------------------------
    def create_token(
        self,
        user_id: int,
        code: str,
        purpose: TokenPurpose,
        *,
        created_at: datetime,
        expires_at: datetime,
    ) -> Token:
        entity = Token(
            token=code,
            purpose=purpose,
            created_at=created_at,
            expires_at=expires_at,
            validated_at=None,
            user_id=user_id,
        )
        with get_session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    def get_token(self, code: str) -> Optional[Token]:
        with get_session() as session:
            stmt = select(Token).where(Token.token == code).order_by(Token.created_at.desc(), Token.id.desc())
            return session.execute(stmt).scalars().first()

    def get_token_for_purpose(self, code: str, purpose: TokenPurpose) -> Optional[Token]:
        # codes are not unique; the most recent match wins
        with get_session() as session:
            stmt = (
                select(Token)
                .where(Token.token == code, Token.purpose == purpose)
                .order_by(Token.created_at.desc(), Token.id.desc())
            )
            return session.execute(stmt).scalars().first()

    def get_tokens_for_user(self, user_id: int, purpose: TokenPurpose | None = None) -> list[Token]:
        with get_session() as session:
            stmt = select(Token).where(Token.user_id == user_id)
            if purpose is not None:
                stmt = stmt.where(Token.purpose == purpose)
            return session.execute(stmt.order_by(Token.created_at, Token.id)).scalars().all()

    def mark_token_validated(self, token_id: int, validated_at: datetime) -> None:
        with get_session() as session:
            session.execute(update(Token).where(Token.id == token_id).values(validated_at=validated_at))
            session.commit()

    def delete_expired_tokens(self, now: datetime) -> int:
        with get_session() as session:
            result = session.execute(delete(Token).where(Token.expires_at < now))
            session.commit()
            return int(result.rowcount or 0)
