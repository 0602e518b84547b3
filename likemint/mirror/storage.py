"""Relational mirror of on-chain Mint/Claim events."""

from __future__ import annotations

import contextlib
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, Iterator, List, Optional

from sqlalchemy import (
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    create_engine,
    func,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class MintRecord(Base):
    __tablename__ = "mint"
    __table_args__ = (
        UniqueConstraint("liker_fid", "liked_fid", "first_like_time", name="mint_compound_key"),
        Index("mint_time", "block_timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    liker_fid: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    liked_fid: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    liker_address: Mapped[str] = mapped_column(String(42), nullable=False)
    liked_address: Mapped[str] = mapped_column(String(42), nullable=False)
    quantity_likes: Mapped[int] = mapped_column(Integer, nullable=False)
    first_like_time: Mapped[int] = mapped_column(Integer, nullable=False)
    last_like_time: Mapped[int] = mapped_column(Integer, nullable=False)
    block_timestamp: Mapped[int] = mapped_column(Integer, nullable=False)
    block_number: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_hash: Mapped[str] = mapped_column(String(66), nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "liker_fid": self.liker_fid,
            "liked_fid": self.liked_fid,
            "liker_address": self.liker_address,
            "liked_address": self.liked_address,
            "quantity_likes": self.quantity_likes,
            "first_like_time": self.first_like_time,
            "last_like_time": self.last_like_time,
            "block_timestamp": self.block_timestamp,
            "block_number": self.block_number,
            "transaction_hash": self.transaction_hash,
        }


class ClaimRecord(Base):
    __tablename__ = "claim"
    __table_args__ = (
        UniqueConstraint("liker_fid", "nonce", name="claim_compound_key"),
        Index("claim_time", "block_timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    liker_fid: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    liker_address: Mapped[str] = mapped_column(String(42), nullable=False)
    nonce: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_tokens: Mapped[Decimal] = mapped_column(Numeric(13, 2), nullable=False)
    block_timestamp: Mapped[int] = mapped_column(Integer, nullable=False)
    block_number: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_hash: Mapped[str] = mapped_column(String(66), nullable=False)


class LogScan(Base):
    """Per event type, the last block the mirror has processed."""

    __tablename__ = "log_scan"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    log_type: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    last_block_number: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class MirrorRepository:
    """Owns the mirror engine; the background job is its only writer."""

    def __init__(self, url: str, echo: bool = False) -> None:
        kwargs: Dict[str, Any] = {"echo": echo, "future": True}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
        self._engine: Engine = create_engine(url, **kwargs)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_all(self) -> None:
        Base.metadata.create_all(self._engine)

    @contextlib.contextmanager
    def session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # Cursor ---------------------------------------------------------------

    def get_cursor(self, log_type: str) -> Optional[int]:
        with self.session() as session:
            return session.scalar(
                select(LogScan.last_block_number).where(LogScan.log_type == log_type)
            )

    @staticmethod
    def _set_cursor(session: Session, log_type: str, block_number: int) -> None:
        row = session.scalar(select(LogScan).where(LogScan.log_type == log_type))
        if row:
            row.last_block_number = block_number
        else:
            session.add(LogScan(log_type=log_type, last_block_number=block_number))

    def set_cursor(self, log_type: str, block_number: int) -> None:
        with self.session() as session:
            self._set_cursor(session, log_type, block_number)

    # Writes -----------------------------------------------------------------

    def store_mints(self, rows: Iterable[Dict[str, Any]], *, cursor: Optional[int] = None) -> int:
        """Insert mint rows not yet mirrored; optionally advance the cursor in the same transaction."""
        inserted = 0
        with self.session() as session:
            for row in rows:
                exists = session.scalar(
                    select(MintRecord.id).where(
                        MintRecord.liker_fid == row["liker_fid"],
                        MintRecord.liked_fid == row["liked_fid"],
                        MintRecord.first_like_time == row["first_like_time"],
                    )
                )
                if exists:
                    continue
                session.add(MintRecord(**row))
                session.flush()
                inserted += 1
            if cursor is not None:
                self._set_cursor(session, "mint", cursor)
        return inserted

    def store_claims(self, rows: Iterable[Dict[str, Any]], *, cursor: Optional[int] = None) -> int:
        inserted = 0
        with self.session() as session:
            for row in rows:
                exists = session.scalar(
                    select(ClaimRecord.id).where(
                        ClaimRecord.liker_fid == row["liker_fid"],
                        ClaimRecord.nonce == row["nonce"],
                    )
                )
                if exists:
                    continue
                session.add(ClaimRecord(**row))
                session.flush()
                inserted += 1
            if cursor is not None:
                self._set_cursor(session, "claim", cursor)
        return inserted

    # Reads ------------------------------------------------------------------

    def recent_mints(self, limit: int = 20) -> List[Dict[str, Any]]:
        with self.session() as session:
            stmt = select(MintRecord).order_by(MintRecord.id.desc()).limit(limit)
            return [record.to_dict() for record in session.scalars(stmt)]

    def owned_by(self, fid: int) -> List[Dict[str, Any]]:
        """Likers whose likes ``fid`` has minted, most recently minted first."""
        last_mint = func.max(MintRecord.block_timestamp).label("last_mint_time")
        stmt = (
            select(
                MintRecord.liker_fid,
                func.sum(MintRecord.quantity_likes).label("likes"),
                last_mint,
            )
            .where(MintRecord.liked_fid == fid)
            .group_by(MintRecord.liker_fid)
            .order_by(last_mint.desc())
        )
        with self.session() as session:
            return [
                {"liker_fid": row.liker_fid, "likes": int(row.likes), "last_mint_time": row.last_mint_time}
                for row in session.execute(stmt)
            ]

    def owners_of(self, fid: int) -> List[Dict[str, Any]]:
        """Accounts that minted ``fid``'s likes, largest holders first."""
        likes = func.sum(MintRecord.quantity_likes).label("likes")
        stmt = (
            select(
                MintRecord.liked_fid,
                likes,
                func.max(MintRecord.block_timestamp).label("last_mint_time"),
            )
            .where(MintRecord.liker_fid == fid)
            .group_by(MintRecord.liked_fid)
            .order_by(likes.desc())
        )
        with self.session() as session:
            return [
                {"liked_fid": row.liked_fid, "likes": int(row.likes), "last_mint_time": row.last_mint_time}
                for row in session.execute(stmt)
            ]
